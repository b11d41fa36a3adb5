"""FastAPI dependencies for database access, clocks, and admin authentication."""

import logging
from typing import Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError

from .clock import Clock, system_clock
from .config import settings
from .exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def get_clock() -> Clock:
    """Time source for request handlers; overridden in tests."""
    return system_clock


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> dict:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        dict: User information from validated token

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    try:
        # PyJWT rejects expired tokens when an exp claim is present
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=["HS256"]
        )
    except PyJWTError as e:
        logger.info("Rejected bearer token", extra={"error": str(e)})
        raise AuthenticationError(f"Token validation failed: {e}")

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError("Invalid token payload")

    return {
        "user_id": user_id,
        "username": payload.get("username"),
        "email": payload.get("email"),
        "roles": payload.get("roles", []),
    }


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """Gate for inventory admin operations (blocks, capacity changes)."""
    if ADMIN_ROLE not in user["roles"]:
        logger.warning(
            "Inventory admin access denied",
            extra={"user_id": user["user_id"], "roles": user["roles"]}
        )
        raise AuthorizationError(required_permissions=[ADMIN_ROLE])
    return user


def actor_name(user: dict) -> str:
    """Name recorded in the inventory audit log for an admin user."""
    return user.get("username") or user["user_id"]
