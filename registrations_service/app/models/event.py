"""
Event model for Registrations Service.
Holds the declared seat limit that the approval capacity gate is checked against.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Enum,
    CheckConstraint, Index
)
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from app.models.base import Base


class EventCategory(PyEnum):
    """Event category enumeration."""
    TECHNICAL = "technical"
    CULTURAL = "cultural"
    SPORTS = "sports"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    COMPETITION = "competition"
    OTHER = "other"


class EventStatus(PyEnum):
    """Event status enumeration."""
    PENDING = "pending"           # Created by organizer, awaiting admin review
    APPROVED = "approved"         # Approved by admin
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Registrations are refused while the event is in one of these states
CLOSED_EVENT_STATUSES = (EventStatus.CANCELLED, EventStatus.COMPLETED)


class Event(Base):
    """
    Event model. Status transitions are organizer/admin driven and never
    touched by the registration workflow.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    category = Column(Enum(EventCategory), nullable=False, default=EventCategory.OTHER)

    # Schedule: calendar date plus free-text clock strings ("10:00 AM", "22:00")
    date = Column(Date, nullable=False, index=True)
    time = Column(String(20), nullable=False)
    end_time = Column(String(20), nullable=True)

    venue = Column(String(255), nullable=False)
    max_seats = Column(Integer, nullable=False)
    status = Column(Enum(EventStatus), default=EventStatus.PENDING, nullable=False, index=True)
    organizer_id = Column(Integer, nullable=False, index=True)  # References auth service
    views = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('max_seats >= 1', name='check_event_max_seats_positive'),
        Index('idx_event_organizer_status', 'organizer_id', 'status'),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}', max_seats={self.max_seats})>"

    def to_dict(self) -> dict:
        """Convert event to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value if self.category else None,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "end_time": self.end_time,
            "venue": self.venue,
            "max_seats": self.max_seats,
            "status": self.status.value if self.status else None,
            "organizer_id": self.organizer_id,
            "views": self.views,
        }

    @property
    def is_open(self) -> bool:
        """Check if the event still accepts registrations."""
        return self.status not in CLOSED_EVENT_STATUSES

    def is_owned_by(self, user_id: int) -> bool:
        """Check if the given user organizes this event."""
        return self.organizer_id == user_id
