"""
Certificate API endpoints for Registrations Service.
"""

from fastapi import APIRouter, Depends, status
from typing import List
import logging

from app.api.dependencies import get_authenticated_user, get_container
from app.core.container import ServiceContainer
from app.schemas.registration import (
    CertificateRequest,
    CertificateIssue,
    CertificateResponse,
    AttendedEventResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.post("/request", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
async def request_certificate(
    request: CertificateRequest,
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Request a certificate for an attended event."""
    certificate = await container.certificate_service.request_certificate(request.event_id, user_info["user_id"])
    return CertificateResponse.model_validate(certificate)


@router.post("/issue", response_model=CertificateResponse)
async def issue_certificate(
    issue: CertificateIssue,
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Issue a certificate. Organizer of the event or admin only."""
    certificate = await container.certificate_service.issue_certificate(
        issue.event_id,
        issue.participant_id,
        issue.certificate_url,
        user_info["user_id"],
        user_info["user_role"],
        fee_paid=issue.fee_paid
    )
    return CertificateResponse.model_validate(certificate)


@router.get("/me", response_model=List[CertificateResponse])
async def get_my_certificates(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    certificates = await container.certificate_service.my_certificates(user_info["user_id"])
    return [CertificateResponse.model_validate(c) for c in certificates]


@router.get("/attended-events", response_model=List[AttendedEventResponse])
async def get_attended_events(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    events = await container.certificate_service.attended_events(user_info["user_id"])
    return [AttendedEventResponse.model_validate(e) for e in events]
