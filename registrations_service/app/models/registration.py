"""
Registration, attendance and certificate models for Registrations Service.
Each record is unique per (event, participant) pair at the storage layer.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum, Text,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum

from app.models.base import Base
from app.models.event import Event


class RegistrationStatus(PyEnum):
    """Registration status enumeration."""
    PENDING = "pending"           # Participant registered, awaiting organizer decision
    APPROVED = "approved"         # Seat allocated, ticket issued
    REJECTED = "rejected"         # Declined by organizer or admin
    CANCELLED = "cancelled"       # Withdrawn by participant


# Statuses from which the owning participant may still withdraw
CANCELLABLE_STATUSES = (RegistrationStatus.PENDING, RegistrationStatus.APPROVED)


class Registration(Base):
    """
    One participant's registration for one event.
    A single lifetime record exists per pair; cancelled records are kept.
    """

    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, nullable=False, index=True)  # References auth service

    status = Column(Enum(RegistrationStatus), default=RegistrationStatus.PENDING, nullable=False, index=True)
    ics_ticket = Column(Text, nullable=True)  # Calendar ticket issued on approval

    registered_on = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    decided_by = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    event = relationship(Event, lazy="joined", innerjoin=True)

    __table_args__ = (
        UniqueConstraint('event_id', 'participant_id', name='uq_registration_event_participant'),
        Index('idx_registration_event_status', 'event_id', 'status'),
    )

    def __repr__(self):
        return f"<Registration(id={self.id}, event_id={self.event_id}, status='{self.status.value}')>"

    def to_dict(self) -> dict:
        """Convert registration to dictionary representation."""
        return {
            "id": self.id,
            "event_id": self.event_id,
            "participant_id": self.participant_id,
            "status": self.status.value,
            "has_ticket": self.ics_ticket is not None,
            "registered_on": self.registered_on.isoformat() if self.registered_on else None,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }

    @property
    def is_cancellable(self) -> bool:
        return self.status in CANCELLABLE_STATUSES


class Attendance(Base):
    """
    Attendance record, upserted by organizers for approved participants.
    """

    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, nullable=False, index=True)

    attended = Column(Boolean, default=False, nullable=False)
    check_in_method = Column(String(20), default="manual", nullable=False)  # manual, qr
    marked_on = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    marked_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('event_id', 'participant_id', name='uq_attendance_event_participant'),
    )

    def __repr__(self):
        return f"<Attendance(event_id={self.event_id}, participant_id={self.participant_id}, attended={self.attended})>"


class CertificateStatus(PyEnum):
    """Certificate status enumeration."""
    REQUESTED = "requested"
    ISSUED = "issued"


class Certificate(Base):
    """
    Participation certificate, requestable only after attending the event.
    """

    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, nullable=False, index=True)

    certificate_url = Column(String(500), nullable=True)  # Set when issued
    status = Column(Enum(CertificateStatus), default=CertificateStatus.REQUESTED, nullable=False)
    fee_paid = Column(Boolean, default=False, nullable=False)
    issued_on = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('event_id', 'participant_id', name='uq_certificate_event_participant'),
    )

    def __repr__(self):
        return f"<Certificate(event_id={self.event_id}, participant_id={self.participant_id}, status='{self.status.value}')>"
