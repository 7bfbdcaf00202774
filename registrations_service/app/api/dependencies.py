"""
API dependencies for Registrations Service.
Handles authentication, authorization, and service lookup.
"""

from typing import Optional, Dict, Any
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import logging

from app.core.container import ServiceContainer

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()


class AuthenticationError(Exception):
    """Custom exception for authentication errors."""
    pass


def get_container(request: Request) -> ServiceContainer:
    """Service container built at startup."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up"
        )
    return container


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_payload(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    container: ServiceContainer = Depends(get_container)
) -> Dict[str, Any]:
    """
    Decode and validate the Bearer JWT.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(
            credentials.credentials,
            container.jwt_secret,
            algorithms=[container.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")


async def get_current_user_id(payload: Dict[str, Any] = Depends(get_token_payload)) -> int:
    """
    Extract user ID from the JWT payload.

    Raises:
        HTTPException: If the claim is missing or malformed
    """
    try:
        user_id = payload.get("user_id")
        if not user_id:
            raise AuthenticationError("Invalid token: missing user_id")
        return int(user_id)
    except AuthenticationError as e:
        raise _unauthorized(str(e))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token: malformed user_id")


async def get_current_user_role(payload: Dict[str, Any] = Depends(get_token_payload)) -> str:
    """
    Extract user role from the JWT payload.

    Raises:
        HTTPException: If the claim is missing
    """
    user_role = payload.get("role")
    if not user_role:
        raise _unauthorized("Invalid token: missing role")
    return user_role


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


async def get_authenticated_user(
    user_id: int = Depends(get_current_user_id),
    user_role: str = Depends(get_current_user_role)
) -> Dict[str, Any]:
    """
    Get authenticated user information.

    Returns:
        Dictionary with user ID and role
    """
    return {"user_id": user_id, "user_role": user_role}


async def get_admin_user(
    user_id: int = Depends(get_current_user_id),
    user_role: str = Depends(require_admin_role)
) -> Dict[str, Any]:
    """
    Get authenticated admin user information.
    """
    return {"user_id": user_id, "user_role": user_role}


async def check_service_health(container: Optional[ServiceContainer]) -> Dict[str, Any]:
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
    if container is None:
        health_status["overall"] = "unhealthy"
        return health_status

    health_status["database"] = "healthy" if container.db_manager.health_check() else "unhealthy"

    if container.redis_manager is None:
        health_status["redis"] = "disabled"
    else:
        redis_healthy = await container.redis_manager.health_check()
        health_status["redis"] = "healthy" if redis_healthy else "unhealthy"

    if health_status["database"] == "healthy" and health_status["redis"] in ("healthy", "disabled"):
        health_status["overall"] = "healthy"
    else:
        health_status["overall"] = "unhealthy"

    return health_status
