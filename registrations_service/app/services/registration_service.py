"""
Registration Service for Registrations Service.
Owns the registration state machine and the approval capacity gate.

pending -> approved | rejected | cancelled
approved -> cancelled
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
import logging

from app.core.errors import (
    NotFoundError, ForbiddenError, DuplicateRegistrationError, EventNotOpenError,
    CapacityExceededError, InvalidInputError
)
from app.db.database import storage_errors
from app.db.redis_client import RedisManager, DistributedLock
from app.models.event import Event
from app.models.registration import Registration, RegistrationStatus, CANCELLABLE_STATUSES
from app.services.capacity_service import CapacityService, count_by_status, count_by_status_query
from app.services.ticket_service import TicketService, ticket_filename

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def can_manage_event(event: Event, actor_id: int, actor_role: Optional[str]) -> bool:
    """Admins manage every event; organizers only their own."""
    return actor_role == ADMIN_ROLE or event.is_owned_by(actor_id)


class RegistrationService:
    """
    Registration ledger with an atomic approval capacity gate.
    Approvals on the same event are serialized by a per-event lock, and the
    write itself is a single conditional UPDATE guarded by the approved count.
    """

    def __init__(
        self,
        db_manager,
        capacity_service: CapacityService,
        ticket_service: TicketService,
        redis_manager: Optional[RedisManager] = None,
        consistency_config: Optional[Dict[str, Any]] = None
    ):
        self.db_manager = db_manager
        self.capacity_service = capacity_service
        self.ticket_service = ticket_service
        self.redis_manager = redis_manager
        self.consistency_config = consistency_config or {}
        # Entries disappear once no approval holds or awaits the lock
        self._event_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _local_lock(self, event_id: int) -> asyncio.Lock:
        lock = self._event_locks.get(event_id)
        if lock is None:
            lock = asyncio.Lock()
            self._event_locks[event_id] = lock
        return lock

    @asynccontextmanager
    async def _approval_lock(self, event_id: int):
        """Exclusive scope for the capacity check and write on one event."""
        async with self._local_lock(event_id):
            if self.redis_manager is not None and self.consistency_config.get("enable_distributed_locks"):
                lock_key = f"registration:approve:event:{event_id}"
                async with DistributedLock(
                    self.redis_manager,
                    lock_key,
                    timeout=self.consistency_config.get("lock_timeout_seconds", 30),
                    blocking_timeout=self.consistency_config.get("lock_blocking_timeout_seconds", 10)
                ):
                    yield
            else:
                yield

    async def get_counts(self, event_id: int) -> Dict[str, int]:
        """Approved and pending counts for an event."""
        with self.db_manager.get_session() as session:
            return {
                "approved": self.capacity_service.approved_count(session, event_id),
                "pending": count_by_status(session, event_id, RegistrationStatus.PENDING),
            }

    async def count_by_status(self, event_id: int, status: RegistrationStatus) -> int:
        with self.db_manager.get_session() as session:
            return count_by_status(session, event_id, status)

    async def get_registration(self, registration_id: int) -> Registration:
        with self.db_manager.get_session() as session:
            registration = session.get(Registration, registration_id)
            if not registration:
                raise NotFoundError("Registration", registration_id)
            return registration

    async def create(self, event_id: int, participant_id: int) -> Tuple[Registration, Dict[str, int]]:
        """
        Register a participant for an event.

        Returns:
            Tuple of (registration, {"approved", "pending"} counts)

        Raises:
            NotFoundError: If the event does not exist
            EventNotOpenError: If the event is cancelled or completed
            DuplicateRegistrationError: If any registration already exists for the pair
        """
        with storage_errors("create registration", event_id=event_id, participant_id=participant_id):
            try:
                with self.db_manager.get_session() as session:
                    event = session.get(Event, event_id)
                    if not event:
                        raise NotFoundError("Event", event_id)
                    if not event.is_open:
                        raise EventNotOpenError(event_id, event.status.value)

                    existing = session.execute(
                        select(Registration.id).where(
                            Registration.event_id == event_id,
                            Registration.participant_id == participant_id
                        )
                    ).scalar_one_or_none()
                    if existing is not None:
                        raise DuplicateRegistrationError(event_id, participant_id)

                    registration = Registration(
                        event_id=event_id,
                        participant_id=participant_id,
                        status=RegistrationStatus.PENDING
                    )
                    session.add(registration)
                    session.flush()
                    session.refresh(registration)
            except IntegrityError:
                # Lost a race against a concurrent registration for the same pair
                raise DuplicateRegistrationError(event_id, participant_id)

        logger.info(f"Registration {registration.id} created for event {event_id} by participant {participant_id}")
        return registration, await self.get_counts(event_id)

    def _load_for_decision(self, registration_id: int, actor_id: int, actor_role: Optional[str]) -> Registration:
        """Fetch a pending registration the actor may decide on."""
        with self.db_manager.get_session() as session:
            registration = session.get(Registration, registration_id)
            if not registration:
                raise NotFoundError("Registration", registration_id)

        if not can_manage_event(registration.event, actor_id, actor_role):
            raise ForbiddenError("Not authorized to manage registrations for this event")
        if registration.status != RegistrationStatus.PENDING:
            raise InvalidInputError(f"Registration is already {registration.status.value}")
        return registration

    async def approve(self, registration_id: int, actor_id: int, actor_role: Optional[str]) -> Registration:
        """
        Approve a pending registration and attach its ticket.
        The ticket is built first, so a bad event schedule leaves nothing changed.

        Raises:
            NotFoundError: If the registration does not exist
            ForbiddenError: If the actor is neither admin nor the owning organizer
            InvalidInputError: If the registration is no longer pending
            InvalidEventScheduleError: If the event date or time cannot be parsed
            CapacityExceededError: If the event has no seats left
            LockUnavailableError: If another instance holds the event lock too long
            InternalError: On unexpected storage failures
        """
        registration = self._load_for_decision(registration_id, actor_id, actor_role)
        event_id = registration.event_id
        ticket = self.ticket_service.issue_for_event(registration.event)

        async with self._approval_lock(event_id):
            with storage_errors("approve registration", registration_id=registration_id, event_id=event_id, actor_id=actor_id):
                with self.db_manager.get_transaction_session() as session:
                    max_seats = session.execute(
                        select(Event.max_seats).where(Event.id == event_id).with_for_update()
                    ).scalar_one()

                    now = datetime.now(timezone.utc)
                    approved_count = count_by_status_query(event_id, RegistrationStatus.APPROVED).scalar_subquery()
                    result = session.execute(
                        update(Registration)
                        .where(
                            Registration.id == registration_id,
                            Registration.status == RegistrationStatus.PENDING,
                            approved_count < max_seats
                        )
                        .values(
                            status=RegistrationStatus.APPROVED,
                            ics_ticket=ticket,
                            decided_at=now,
                            decided_by=actor_id,
                            updated_at=now
                        )
                        .execution_options(synchronize_session=False)
                    )

                    if result.rowcount == 0:
                        current = session.execute(
                            select(Registration.status).where(Registration.id == registration_id)
                        ).scalar_one()
                        session.rollback()
                        if current != RegistrationStatus.PENDING:
                            raise InvalidInputError(f"Registration is already {current.value}")
                        logger.info(f"Approval of registration {registration_id} refused: event {event_id} is full")
                        raise CapacityExceededError(event_id)

                    session.commit()

        logger.info(f"Registration {registration_id} approved for event {event_id} by {actor_id}")
        return await self.get_registration(registration_id)

    async def reject(self, registration_id: int, actor_id: int, actor_role: Optional[str]) -> Registration:
        """
        Reject a pending registration. No capacity check.

        Raises:
            NotFoundError, ForbiddenError, InvalidInputError, InternalError
        """
        registration = self._load_for_decision(registration_id, actor_id, actor_role)

        now = datetime.now(timezone.utc)
        with storage_errors("reject registration", registration_id=registration_id, actor_id=actor_id):
            with self.db_manager.get_session() as session:
                result = session.execute(
                    update(Registration)
                    .where(Registration.id == registration_id, Registration.status == RegistrationStatus.PENDING)
                    .values(status=RegistrationStatus.REJECTED, decided_at=now, decided_by=actor_id, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise InvalidInputError("Registration is no longer pending")

        logger.info(f"Registration {registration_id} rejected for event {registration.event_id} by {actor_id}")
        return await self.get_registration(registration_id)

    async def cancel(self, registration_id: int, participant_id: int) -> Tuple[Registration, Dict[str, int]]:
        """
        Withdraw a pending or approved registration. Only the owner may cancel;
        anyone else sees it as missing.

        Returns:
            Tuple of (registration, {"approved", "pending"} counts)

        Raises:
            NotFoundError: If no such registration belongs to the participant
            InvalidInputError: If it is already rejected or cancelled
            InternalError: On unexpected storage failures
        """
        now = datetime.now(timezone.utc)
        owned = (Registration.id == registration_id, Registration.participant_id == participant_id)
        with storage_errors("cancel registration", registration_id=registration_id, participant_id=participant_id):
            with self.db_manager.get_session() as session:
                result = session.execute(
                    update(Registration)
                    .where(*owned, Registration.status.in_(CANCELLABLE_STATUSES))
                    .values(status=RegistrationStatus.CANCELLED, cancelled_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    current = session.execute(select(Registration.status).where(*owned)).scalar_one_or_none()
                    if current is None:
                        raise NotFoundError("Registration", registration_id)
                    raise InvalidInputError(f"Cannot cancel a {current.value} registration")

        registration = await self.get_registration(registration_id)
        logger.info(f"Registration {registration_id} cancelled by participant {participant_id}")
        return registration, await self.get_counts(registration.event_id)

    async def list_by_participant(self, participant_id: int) -> List[Registration]:
        with self.db_manager.get_session() as session:
            registrations = session.execute(
                select(Registration)
                .where(Registration.participant_id == participant_id)
                .order_by(Registration.registered_on.desc(), Registration.id.desc())
            ).scalars().all()
            return list(registrations)

    async def list_by_event(
        self,
        event_id: int,
        actor_id: int,
        actor_role: Optional[str],
        status: Optional[RegistrationStatus] = None
    ) -> List[Registration]:
        """
        Registrations for an event, visible to its organizer and admins.

        Raises:
            NotFoundError: If the event does not exist
            ForbiddenError: If the actor may not manage the event
        """
        with self.db_manager.get_session() as session:
            event = session.get(Event, event_id)
            if not event:
                raise NotFoundError("Event", event_id)
            if not can_manage_event(event, actor_id, actor_role):
                raise ForbiddenError("Not authorized to view registrations for this event")

            query = select(Registration).where(Registration.event_id == event_id)
            if status is not None:
                query = query.where(Registration.status == status)

            registrations = session.execute(
                query.order_by(Registration.registered_on.asc(), Registration.id.asc())
            ).scalars().all()
            return list(registrations)

    async def download_ticket(self, registration_id: int, participant_id: int) -> Tuple[str, str]:
        """
        Fetch the calendar ticket of an approved registration.

        Returns:
            Tuple of (filename, ticket text)

        Raises:
            NotFoundError: If the registration is missing, not the participant's,
                not approved or has no ticket
        """
        with self.db_manager.get_session() as session:
            registration = session.execute(
                select(Registration).where(
                    Registration.id == registration_id,
                    Registration.participant_id == participant_id
                )
            ).scalar_one_or_none()

            if not registration:
                raise NotFoundError("Registration", registration_id)
            if registration.status != RegistrationStatus.APPROVED or not registration.ics_ticket:
                raise NotFoundError("Ticket", registration_id)

            return ticket_filename(registration.event.title), registration.ics_ticket
