"""
API dependencies for Seatbook.
Handles authentication, authorization, and common dependencies.
"""

from typing import Dict, Any
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import logging

from seatbook.core.config import config
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.services.jwt_service import ORGANIZER_ROLES

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()


class AuthenticationError(Exception):
    """Raised when a token lacks required claims."""
    pass


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_payload(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """
    Decode and validate the bearer token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        jwt_secret = await config.get_jwt_secret()
        jwt_algorithm = await config.get_jwt_algorithm()

        payload = jwt.decode(
            credentials.credentials,
            jwt_secret,
            algorithms=[jwt_algorithm]
        )

        if not payload.get("user_id"):
            raise AuthenticationError("Invalid token: missing user_id")

        return payload

    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")
    except AuthenticationError as e:
        raise _unauthorized(str(e))


async def get_current_user_id(payload: Dict[str, Any] = Depends(get_token_payload)) -> int:
    """User ID from the token. Booking requires it."""
    try:
        return int(payload["user_id"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token: malformed user_id")


async def get_current_user_role(payload: Dict[str, Any] = Depends(get_token_payload)) -> str:
    """User role from the token, defaulting to a plain user."""
    return payload.get("role") or "user"


async def require_admin_role(user_role: str = Depends(get_current_user_role)) -> str:
    """
    Require admin role for access.

    Raises:
        HTTPException: If user is not admin
    """
    if user_role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user_role


async def require_organizer_role(user_role: str = Depends(get_current_user_role)) -> str:
    """Require organizer or admin role, e.g. for creating events."""
    if user_role not in ORGANIZER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organizer access required"
        )
    return user_role


async def check_service_health() -> Dict[str, Any]:
    """
    Check the health of all service dependencies.

    Returns:
        Dictionary with health status of all components
    """
    health_status = {
        "database": "unknown",
        "redis": "unknown",
        "overall": "unknown"
    }

    try:
        db_manager.ping()
        health_status["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["database"] = "unhealthy"

    redis_healthy = await redis_manager.health_check()
    health_status["redis"] = "healthy" if redis_healthy else "unhealthy"

    # Redis only accelerates refreshes, the database is required
    if health_status["database"] != "healthy":
        health_status["overall"] = "unhealthy"
    elif health_status["redis"] != "healthy":
        health_status["overall"] = "degraded"
    else:
        health_status["overall"] = "healthy"

    return health_status


# Common dependency combinations
async def get_authenticated_user(
    user_id: int = Depends(get_current_user_id),
    user_role: str = Depends(get_current_user_role)
) -> Dict[str, Any]:
    """Authenticated user information."""
    return {
        "user_id": user_id,
        "user_role": user_role,
        "is_admin": user_role == "admin"
    }


async def get_admin_user(
    user_id: int = Depends(get_current_user_id),
    user_role: str = Depends(require_admin_role)
) -> Dict[str, Any]:
    """Authenticated admin user information."""
    return {
        "user_id": user_id,
        "user_role": user_role,
        "is_admin": True
    }


async def get_organizer_user(
    user_id: int = Depends(get_current_user_id),
    user_role: str = Depends(require_organizer_role)
) -> Dict[str, Any]:
    """Authenticated organizer or admin user information."""
    return {
        "user_id": user_id,
        "user_role": user_role,
        "is_admin": user_role == "admin"
    }
