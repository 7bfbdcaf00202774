"""
Attendance API endpoints for Registrations Service.
"""

from fastapi import APIRouter, Depends, Path
from typing import List
import logging

from app.api.dependencies import get_authenticated_user, get_container
from app.core.container import ServiceContainer
from app.schemas.registration import AttendanceMark, AttendanceResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("", response_model=AttendanceResponse)
async def mark_attendance(
    attendance_data: AttendanceMark,
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """
    Mark a participant as attended (or not). Organizer of the event or admin only;
    the participant must hold an approved registration.
    """
    attendance = await container.attendance_service.mark_attendance(
        attendance_data.event_id,
        attendance_data.participant_id,
        user_info["user_id"],
        user_info["user_role"],
        attended=attendance_data.attended,
        check_in_method=attendance_data.check_in_method
    )
    return AttendanceResponse.model_validate(attendance)


@router.get("/event/{event_id}", response_model=List[AttendanceResponse])
async def get_event_attendance(
    event_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    records = await container.attendance_service.event_attendance(
        event_id, user_info["user_id"], user_info["user_role"]
    )
    return [AttendanceResponse.model_validate(r) for r in records]
