"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints. Access tokens
are issued by the identity provider; this module only validates them and
applies role-based access control.

Two dependencies are exposed:
- get_current_user: any authenticated user (students use this)
- get_current_admin_user: users whose ``role`` claim is ``admin``

SECURITY NOTE:
- Development mode test tokens are ONLY accepted when PYTHON_ENV=development
  is set explicitly; an unset PYTHON_ENV is treated as production
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apply4me.core.config import settings
from apply4me.core.security import decode_token

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
STUDENT_ROLE = "student"

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class AuthUser:
    """
    Represents an authenticated caller.

    Populated from JWT claims after token validation.

    Attributes:
        id: User's unique identifier (UUID, the ``sub`` claim)
        email: User's email address
        role: ``student`` or ``admin``
        name: User's display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def __str__(self) -> str:
        return f"AuthUser(id={self.id}, email={self.email}, role={self.role})"


# Admin endpoints receive the same shape; the alias keeps signatures readable.
AdminUser = AuthUser


def _is_dev_mode_safe() -> bool:
    """
    Check if development mode is safe to enable.

    Requires settings to report development, settings to not report
    production, and the raw PYTHON_ENV variable to be neither production
    nor staging.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var != "production"
        and env_var != "staging"
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


# SECURITY: Multiple checks prevent this from being enabled in production
_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_ADMIN = AuthUser(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    email="admin@apply4me.dev",
    role=ADMIN_ROLE,
    name="Development Admin",
)

_DEV_STUDENT = AuthUser(
    id=UUID("00000000-0000-0000-0000-000000000002"),
    email="student@apply4me.dev",
    role=STUDENT_ROLE,
    name="Development Student",
)

_DEV_TOKENS = {
    "dev-token": _DEV_ADMIN,
    "test-token": _DEV_ADMIN,
    "student-token": _DEV_STUDENT,
}


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> AuthUser:
    """
    Validate JWT token and extract user claims.

    Args:
        token: JWT token string from Authorization header

    Returns:
        AuthUser built from the token claims

    Raises:
        HTTPException 401: If token is invalid, expired or missing claims
    """
    if _DEVELOPMENT_MODE and token in _DEV_TOKENS:
        logger.debug("Development mode: Using test token")
        return _DEV_TOKENS[token]

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return AuthUser(
            id=UUID(str(user_id_str)),
            email=payload.get("email", ""),
            role=payload.get("role", STUDENT_ROLE),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthUser:
    """
    FastAPI dependency returning the authenticated user, whatever the role.

    Usage:
        @router.get("/notifications")
        async def list_notifications(user: AuthUser = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    user = await _validate_jwt_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id} ({user.role})")
    return user


async def get_current_admin_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthUser:
    """
    FastAPI dependency that validates the JWT token and requires the admin role.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
        HTTPException 403: If user is not an admin
    """
    user = await _validate_jwt_token(credentials.credentials)

    if user.role != ADMIN_ROLE:
        logger.warning(
            f"Access denied: User {user.id} ({user.email}) has role '{user.role}', "
            f"but '{ADMIN_ROLE}' is required"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )

    logger.debug(f"Authenticated admin: {user.id} ({user.email})")
    return user


__all__ = [
    "ADMIN_ROLE",
    "STUDENT_ROLE",
    "AdminUser",
    "AuthUser",
    "get_current_admin_user",
    "get_current_user",
]
