"""Unit tests for bearer token handling."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tourbook.core.config import settings
from tourbook.core.dependencies import (
    JWT_ALGORITHM,
    decode_principal,
    encode_principal,
    get_current_principal,
    require_role,
)
from tourbook.core.exceptions import AuthenticationError, PermissionDeniedError
from tourbook.core.principal import Principal, UserRole


def test_encode_then_decode(staff):
    assert decode_principal(encode_principal(staff)) == staff


def test_role_defaults_to_customer():
    token = jwt.encode({"sub": "u-1"}, settings.bearer_token_secret, algorithm=JWT_ALGORITHM)

    principal = decode_principal(token)

    assert principal == Principal(user_id="u-1", role=UserRole.CUSTOMER)


def test_role_is_case_insensitive():
    token = jwt.encode({"sub": "u-1", "role": "admin"}, settings.bearer_token_secret, algorithm=JWT_ALGORITHM)

    assert decode_principal(token).role is UserRole.ADMIN


@pytest.mark.parametrize(
    "payload",
    [
        {"role": "ADMIN"},
        {"sub": "", "role": "ADMIN"},
        {"sub": "u-1", "role": "SUPERUSER"},
    ],
)
def test_bad_payloads(payload):
    token = jwt.encode(payload, settings.bearer_token_secret, algorithm=JWT_ALGORITHM)

    with pytest.raises(AuthenticationError):
        decode_principal(token)


def test_wrong_secret(customer):
    token = jwt.encode({"sub": customer.user_id}, "another-secret", algorithm=JWT_ALGORITHM)

    with pytest.raises(AuthenticationError, match="Token validation failed"):
        decode_principal(token)


def test_expired_token(customer):
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = encode_principal(customer, exp=expired)

    with pytest.raises(AuthenticationError) as exc_info:
        decode_principal(token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, "", "Bearer", "Basic abc", "Bearer a b"])
async def test_malformed_authorization_header(header):
    with pytest.raises(AuthenticationError):
        await get_current_principal(header)


@pytest.mark.asyncio
async def test_current_principal_from_header(customer):
    principal = await get_current_principal(f"Bearer {encode_principal(customer)}")

    assert principal == customer


@pytest.mark.asyncio
async def test_require_role(customer, staff, admin):
    dependency = require_role(UserRole.STAFF)

    assert await dependency(staff) == staff
    assert await dependency(admin) == admin
    with pytest.raises(PermissionDeniedError):
        await dependency(customer)
