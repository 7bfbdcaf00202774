"""
Capacity Service for Registrations Service.
Computes seat availability from a fresh count of approved registrations.
Nothing here is cached or denormalized onto the event row.
"""

from dataclasses import dataclass
from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased
import logging

from app.core.errors import NotFoundError
from app.models.event import Event
from app.models.registration import Registration, RegistrationStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeatAvailability:
    """Seat availability snapshot for one event."""

    event_id: int
    max_seats: int
    booked_seats: int

    @property
    def available_seats(self) -> int:
        return compute_available_seats(self.max_seats, self.booked_seats)

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "available_seats": self.available_seats,
            "max_seats": self.max_seats,
            "booked_seats": self.booked_seats,
        }


def compute_available_seats(max_seats: int, approved_count: int) -> int:
    """availableSeats = max(maxSeats - approvedCount, 0)"""
    return max(max_seats - approved_count, 0)


def count_by_status_query(event_id: int, status: RegistrationStatus):
    """
    Count of registrations in a status for an event.
    Built on an alias so it stays uncorrelated when nested in an UPDATE
    of the registrations table.
    """
    counted = aliased(Registration)
    return (
        select(func.count(counted.id))
        .where(counted.event_id == event_id, counted.status == status)
    )


def count_by_status(session: Session, event_id: int, status: RegistrationStatus) -> int:
    return session.execute(count_by_status_query(event_id, status)).scalar_one()


class CapacityService:
    """
    Read-only seat availability queries.
    """

    def __init__(self, db_manager):
        self.db_manager = db_manager

    def approved_count(self, session: Session, event_id: int) -> int:
        """The capacity primitive shared with the approval gate."""
        return count_by_status(session, event_id, RegistrationStatus.APPROVED)

    async def get_available_seats(self, event_id: int) -> SeatAvailability:
        """
        Get seat availability for an event.

        Raises:
            NotFoundError: If the event does not exist
        """
        with self.db_manager.get_session() as session:
            event = session.get(Event, event_id)
            if not event:
                raise NotFoundError("Event", event_id)

            return SeatAvailability(
                event_id=event.id,
                max_seats=event.max_seats,
                booked_seats=self.approved_count(session, event_id),
            )
