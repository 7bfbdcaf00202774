"""
Event seat availability endpoint for Registrations Service.
"""

from fastapi import APIRouter, Depends, Path
import logging

from app.api.dependencies import get_container
from app.core.container import ServiceContainer
from app.schemas.registration import SeatAvailabilityResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/{event_id}/seats", response_model=SeatAvailabilityResponse)
async def get_available_seats(
    event_id: int = Path(..., gt=0),
    container: ServiceContainer = Depends(get_container)
):
    """
    Live seat availability, recomputed from approved registrations on every call.
    Public endpoint.
    """
    availability = await container.capacity_service.get_available_seats(event_id)
    return SeatAvailabilityResponse(**availability.to_dict())
