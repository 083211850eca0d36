"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Booking engine and HTTP metrics in Prometheus text format",
    response_class=Response,
    tags=["Observability"]
)
async def metrics():
    """Return Prometheus metrics."""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
