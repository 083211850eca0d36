"""FastAPI dependencies for database sessions and the authenticated principal."""

from typing import Callable, Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError

from .config import settings
from .database import get_db
from .exceptions import AuthenticationError
from .principal import Principal, UserRole
from ..validation.business_rules import validate_user_role

JWT_ALGORITHM = "HS256"


def decode_principal(token: str) -> Principal:
    """
    Decode a bearer token into a principal.

    The token must be HS256-signed with ``settings.bearer_token_secret`` and
    carry ``sub``; ``role`` defaults to CUSTOMER. ``exp`` is enforced by PyJWT.

    Raises:
        AuthenticationError: If the token is invalid, expired or malformed
    """
    try:
        payload = jwt.decode(token, settings.bearer_token_secret, algorithms=[JWT_ALGORITHM])
    except PyJWTError as e:
        raise AuthenticationError(f"Token validation failed: {e}") from e

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    try:
        role = UserRole(str(payload.get("role", UserRole.CUSTOMER.value)).upper())
    except ValueError as e:
        raise AuthenticationError(f"Unknown role in token: {payload.get('role')}") from e

    return Principal(user_id=str(user_id), role=role)


def encode_principal(principal: Principal, **claims) -> str:
    """Sign a bearer token for ``principal``; used by seeding scripts and tests."""
    payload = {"sub": principal.user_id, "role": UserRole(principal.role).value, **claims}
    return jwt.encode(payload, settings.bearer_token_secret, algorithm=JWT_ALGORITHM)


async def get_current_principal(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Principal:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        Principal: Caller identity and role

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError as e:
        raise AuthenticationError("Invalid authorization header format") from e

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    return decode_principal(token)


def require_role(required_role: UserRole) -> Callable:
    """Dependency factory that admits callers ranked at least ``required_role``."""

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        validate_user_role(principal, required_role)
        return principal

    return dependency


DatabaseSession = Depends(get_db)
CurrentPrincipal = Depends(get_current_principal)
StaffPrincipal = Depends(require_role(UserRole.STAFF))
AdminPrincipal = Depends(require_role(UserRole.ADMIN))
