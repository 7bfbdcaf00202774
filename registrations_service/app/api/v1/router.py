"""
Main API router for Registrations Service.
Combines all API endpoints and provides health checks.
"""

from fastapi import APIRouter, Request
import logging

from app.api.dependencies import check_service_health
from app.schemas.registration import HealthCheckResponse

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# Create main router
router = APIRouter(prefix="/api/v1")

# Include sub-routers
from app.api.v1.registrations import router as registrations_router
from app.api.v1.events import router as events_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.attendance import router as attendance_router
from app.api.v1.certificates import router as certificates_router

router.include_router(registrations_router)
router.include_router(events_router)
router.include_router(notifications_router)
router.include_router(attendance_router)
router.include_router(certificates_router)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """
    Health check endpoint for the registrations service.

    Returns:
        Service health status
    """
    container = getattr(request.app.state, "container", None)
    health_status = await check_service_health(container)

    return HealthCheckResponse(
        status=health_status["overall"],
        version=SERVICE_VERSION,
        database=health_status["database"],
        redis=health_status["redis"]
    )
