"""Unit tests for health endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(test_client):
    """Test the health check endpoint."""
    response = await test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "tourbook-api"
    assert "version" in data


@pytest.mark.asyncio
async def test_ready_check(test_client):
    """Test the readiness check endpoint."""
    response = await test_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok"}


@pytest.mark.asyncio
async def test_info_endpoint(test_client):
    """Test the service info endpoint."""
    response = await test_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "tourbook-api"
    assert "version" in data
    assert "STRIPE" in data["features"]["payment_webhooks"]


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """Test the RPC-style health ping endpoint."""
    response = await test_client.post("/v1/health/ping", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_request_id_echoed(test_client):
    response = await test_client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
