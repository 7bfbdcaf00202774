"""
Attendance Service for Registrations Service.
"""

from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import logging

from app.core.errors import NotFoundError, ForbiddenError, InvalidInputError
from app.db.database import storage_errors
from app.models.event import Event
from app.models.registration import Attendance, Registration, RegistrationStatus
from app.services.registration_service import can_manage_event

logger = logging.getLogger(__name__)

CHECK_IN_METHODS = ("manual", "qr")


class AttendanceService:
    """
    Records attendance for approved participants.
    """

    def __init__(self, db_manager):
        self.db_manager = db_manager

    def _load_managed_event(self, session, event_id: int, actor_id: int, actor_role: Optional[str]) -> Event:
        event = session.get(Event, event_id)
        if not event:
            raise NotFoundError("Event", event_id)
        if not can_manage_event(event, actor_id, actor_role):
            raise ForbiddenError("Not authorized to manage attendance for this event")
        return event

    @staticmethod
    def _find(session, event_id: int, participant_id: int) -> Optional[Attendance]:
        return session.execute(
            select(Attendance).where(
                Attendance.event_id == event_id,
                Attendance.participant_id == participant_id
            )
        ).scalar_one_or_none()

    def _upsert(
        self,
        event_id: int,
        participant_id: int,
        actor_id: int,
        actor_role: Optional[str],
        attended: bool,
        check_in_method: str
    ) -> Attendance:
        with self.db_manager.get_session() as session:
            self._load_managed_event(session, event_id, actor_id, actor_role)

            approved = session.execute(
                select(Registration.id).where(
                    Registration.event_id == event_id,
                    Registration.participant_id == participant_id,
                    Registration.status == RegistrationStatus.APPROVED
                )
            ).scalar_one_or_none()
            if approved is None:
                raise InvalidInputError("Participant does not have an approved registration for this event")

            attendance = self._find(session, event_id, participant_id)
            if attendance is None:
                attendance = Attendance(event_id=event_id, participant_id=participant_id)
                session.add(attendance)

            attendance.attended = attended
            attendance.check_in_method = check_in_method
            attendance.marked_on = datetime.now(timezone.utc)
            attendance.marked_by = actor_id
            session.flush()
            session.refresh(attendance)
            return attendance

    async def mark_attendance(
        self,
        event_id: int,
        participant_id: int,
        actor_id: int,
        actor_role: Optional[str],
        attended: bool = True,
        check_in_method: str = "manual"
    ) -> Attendance:
        """
        Create or update the attendance record for a participant.
        A concurrent insert for the same pair is retried once as an update.

        Raises:
            NotFoundError: If the event does not exist
            ForbiddenError: If the actor may not manage the event
            InvalidInputError: If the participant has no approved registration
        """
        if check_in_method not in CHECK_IN_METHODS:
            raise InvalidInputError(f"Unknown check-in method: {check_in_method}")

        args = (event_id, participant_id, actor_id, actor_role, attended, check_in_method)
        with storage_errors("mark attendance", event_id=event_id, participant_id=participant_id, actor_id=actor_id):
            try:
                attendance = self._upsert(*args)
            except IntegrityError:
                logger.info(f"Attendance for participant {participant_id} at event {event_id} inserted concurrently, updating")
                attendance = self._upsert(*args)

        logger.info(f"Attendance for participant {participant_id} at event {event_id} set to {attended}")
        return attendance

    async def event_attendance(self, event_id: int, actor_id: int, actor_role: Optional[str]) -> List[Attendance]:
        with self.db_manager.get_session() as session:
            self._load_managed_event(session, event_id, actor_id, actor_role)
            records = session.execute(
                select(Attendance)
                .where(Attendance.event_id == event_id)
                .order_by(Attendance.marked_on.desc())
            ).scalars().all()
            return list(records)
