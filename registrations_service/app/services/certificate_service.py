"""
Certificate Service for Registrations Service.
Participants request certificates for events they attended; organizers or
admins issue them.
"""

from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import logging

from app.core.errors import NotFoundError, ForbiddenError, InvalidInputError
from app.db.database import storage_errors
from app.models.event import Event
from app.models.registration import Attendance, Certificate, CertificateStatus
from app.services.registration_service import can_manage_event

logger = logging.getLogger(__name__)


class CertificateService:
    """
    Certificate lifecycle: requested -> issued.
    """

    def __init__(self, db_manager):
        self.db_manager = db_manager

    @staticmethod
    def _find(session, event_id: int, participant_id: int) -> Optional[Certificate]:
        return session.execute(
            select(Certificate).where(
                Certificate.event_id == event_id,
                Certificate.participant_id == participant_id
            )
        ).scalar_one_or_none()

    def _request(self, event_id: int, participant_id: int) -> Certificate:
        with self.db_manager.get_session() as session:
            attended = session.execute(
                select(Attendance.id).where(
                    Attendance.event_id == event_id,
                    Attendance.participant_id == participant_id,
                    Attendance.attended.is_(True)
                )
            ).scalar_one_or_none()
            if attended is None:
                raise InvalidInputError("You can only request a certificate for an event you attended")

            certificate = self._find(session, event_id, participant_id)
            if certificate is not None:
                if certificate.status == CertificateStatus.ISSUED:
                    raise InvalidInputError("Certificate already issued")
                return certificate

            certificate = Certificate(
                event_id=event_id,
                participant_id=participant_id,
                status=CertificateStatus.REQUESTED
            )
            session.add(certificate)
            session.flush()
            session.refresh(certificate)
            return certificate

    async def request_certificate(self, event_id: int, participant_id: int) -> Certificate:
        """
        Request a certificate. Repeating a pending request returns the
        existing one, including when both requests race on the insert.

        Raises:
            InvalidInputError: If the participant did not attend, or it was already issued
        """
        with storage_errors("request certificate", event_id=event_id, participant_id=participant_id):
            try:
                certificate = self._request(event_id, participant_id)
            except IntegrityError:
                logger.info(f"Certificate for participant {participant_id} at event {event_id} requested concurrently")
                certificate = self._request(event_id, participant_id)

        logger.info(f"Certificate requested by participant {participant_id} for event {event_id}")
        return certificate

    def _issue(
        self,
        event_id: int,
        participant_id: int,
        certificate_url: str,
        actor_id: int,
        actor_role: Optional[str],
        fee_paid: bool
    ) -> Certificate:
        with self.db_manager.get_session() as session:
            event = session.get(Event, event_id)
            if not event:
                raise NotFoundError("Event", event_id)
            if not can_manage_event(event, actor_id, actor_role):
                raise ForbiddenError("Not authorized to issue certificates for this event")

            certificate = self._find(session, event_id, participant_id)
            if certificate is None:
                certificate = Certificate(event_id=event_id, participant_id=participant_id)
                session.add(certificate)

            certificate.certificate_url = certificate_url
            certificate.fee_paid = fee_paid
            certificate.status = CertificateStatus.ISSUED
            certificate.issued_on = datetime.now(timezone.utc)
            session.flush()
            session.refresh(certificate)
            return certificate

    async def issue_certificate(
        self,
        event_id: int,
        participant_id: int,
        certificate_url: str,
        actor_id: int,
        actor_role: Optional[str],
        fee_paid: bool = False
    ) -> Certificate:
        """
        Issue (or re-issue) a participant's certificate.
        A concurrent insert for the same pair is retried once as an update.

        Raises:
            NotFoundError: If the event does not exist
            ForbiddenError: If the actor may not manage the event
        """
        if not certificate_url:
            raise InvalidInputError("Certificate URL is required")

        args = (event_id, participant_id, certificate_url, actor_id, actor_role, fee_paid)
        with storage_errors("issue certificate", event_id=event_id, participant_id=participant_id, actor_id=actor_id):
            try:
                certificate = self._issue(*args)
            except IntegrityError:
                logger.info(f"Certificate for participant {participant_id} at event {event_id} inserted concurrently, updating")
                certificate = self._issue(*args)

        logger.info(f"Certificate issued to participant {participant_id} for event {event_id} by {actor_id}")
        return certificate

    async def my_certificates(self, participant_id: int) -> List[Certificate]:
        with self.db_manager.get_session() as session:
            certificates = session.execute(
                select(Certificate)
                .where(Certificate.participant_id == participant_id)
                .order_by(Certificate.created_at.desc())
            ).scalars().all()
            return list(certificates)

    async def attended_events(self, participant_id: int) -> List[Event]:
        """Events the participant attended, the ones certificates can be requested for."""
        with self.db_manager.get_session() as session:
            events = session.execute(
                select(Event)
                .join(Attendance, Attendance.event_id == Event.id)
                .where(Attendance.participant_id == participant_id, Attendance.attended.is_(True))
                .order_by(Event.date.desc())
            ).scalars().all()
            return list(events)
