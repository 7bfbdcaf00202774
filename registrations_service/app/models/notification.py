"""
Notification model for Registrations Service.
Notifications are time-to-live records: once expires_at passes they are
excluded from every query, whether or not they were physically deleted.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum, JSON, Index
)
from sqlalchemy.sql import func
from enum import Enum as PyEnum
from datetime import datetime, timezone

from app.models.base import Base


class NotificationType(PyEnum):
    """Notification type enumeration."""
    EVENT = "event"
    SYSTEM = "system"
    ANNOUNCEMENT = "announcement"
    REGISTRATION = "registration"
    BOOKMARK = "bookmark"
    ADMIN = "admin"


class NotificationPriority(PyEnum):
    """Notification priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base):
    """
    In-app notification stored for one recipient.
    """

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)  # References auth service

    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    priority = Column(Enum(NotificationPriority), default=NotificationPriority.MEDIUM, nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_notification_recipient_read', 'recipient_id', 'is_read', 'created_at'),
        Index('idx_notification_recipient_type', 'recipient_id', 'type'),
        Index('idx_notification_recipient_priority', 'recipient_id', 'priority', 'created_at'),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type='{self.type.value}')>"

    def to_push_payload(self) -> dict:
        """Payload delivered over the real-time channel."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "data": self.data or {},
            "priority": self.priority.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @property
    def is_expired(self) -> bool:
        """Check if the notification has outlived its TTL."""
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            # SQLite hands back naive datetimes; values are always stored in UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires_at
