"""
Registration API endpoints for Registrations Service.
Handles registering, approval decisions, cancellation and ticket download.
"""

from fastapi import APIRouter, Depends, Response, status, Path, Query
from typing import List, Optional
import logging

from app.api.dependencies import get_authenticated_user, get_container
from app.core.container import ServiceContainer
from app.models.registration import RegistrationStatus
from app.schemas.registration import (
    RegistrationCreate,
    RegistrationResponse,
    RegistrationWithCountsResponse,
    RegistrationActionResponse,
    RegistrationCounts
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.post("", response_model=RegistrationWithCountsResponse, status_code=status.HTTP_201_CREATED)
async def register_for_event(
    registration_data: RegistrationCreate,
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """
    Register the current user for an event. The registration starts pending.
    """
    registration, counts = await container.workflow.register(
        registration_data.event_id, user_info["user_id"]
    )
    return RegistrationWithCountsResponse(
        message="Registered successfully",
        registration=RegistrationResponse.model_validate(registration),
        counts=RegistrationCounts(**counts)
    )


@router.get("/me", response_model=List[RegistrationResponse])
async def get_my_registrations(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Registrations of the current user, newest first."""
    registrations = await container.registration_service.list_by_participant(user_info["user_id"])
    return [RegistrationResponse.model_validate(r) for r in registrations]


@router.get("/event/{event_id}", response_model=List[RegistrationResponse])
async def get_event_registrations(
    event_id: int = Path(..., gt=0),
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Registrations for an event. Organizer of the event or admin only."""
    registrations = await container.registration_service.list_by_event(
        event_id, user_info["user_id"], user_info["user_role"], status=status_filter
    )
    return [RegistrationResponse.model_validate(r) for r in registrations]


@router.put("/{registration_id}/approve", response_model=RegistrationActionResponse)
async def approve_registration(
    registration_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """
    Approve a pending registration, allocating a seat and issuing a ticket.
    Fails with 409 when the event is full.
    """
    registration = await container.workflow.approve(
        registration_id, user_info["user_id"], user_info["user_role"]
    )
    return RegistrationActionResponse(
        message="Registration approved",
        registration=RegistrationResponse.model_validate(registration)
    )


@router.put("/{registration_id}/reject", response_model=RegistrationActionResponse)
async def reject_registration(
    registration_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    registration = await container.workflow.reject(
        registration_id, user_info["user_id"], user_info["user_role"]
    )
    return RegistrationActionResponse(
        message="Registration rejected",
        registration=RegistrationResponse.model_validate(registration)
    )


@router.put("/{registration_id}/cancel", response_model=RegistrationWithCountsResponse)
async def cancel_registration(
    registration_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Withdraw the current user's own registration."""
    registration, counts = await container.workflow.cancel(registration_id, user_info["user_id"])
    return RegistrationWithCountsResponse(
        message="Registration cancelled",
        registration=RegistrationResponse.model_validate(registration),
        counts=RegistrationCounts(**counts)
    )


@router.get("/{registration_id}/ticket")
async def download_ticket(
    registration_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Download the calendar ticket of an approved registration."""
    filename, ticket = await container.registration_service.download_ticket(
        registration_id, user_info["user_id"]
    )
    return Response(
        content=ticket,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
