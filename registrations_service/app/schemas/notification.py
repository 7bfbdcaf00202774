"""
Pydantic schemas for in-app notifications.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.models.notification import NotificationType, NotificationPriority


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: int
    recipient_id: int
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = {}
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """Schema for paginated notification list response."""

    items: List[NotificationResponse] = Field(..., description="List of notifications")
    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Number of items per page")
    total_pages: int = Field(..., description="Total number of pages")
    unread_count: int = Field(..., description="Unread notifications for the user")


class UnreadCountResponse(BaseModel):
    unread_count: int


class NotificationStatsResponse(BaseModel):
    """Schema for notification statistics response."""

    total: int
    unread: int
    read: int
    by_type: Dict[str, int] = {}


class NotificationCountResponse(BaseModel):
    """Schema for bulk mark-read and delete responses."""

    success: bool = True
    message: str
    count: int


class BulkNotificationRequest(BaseModel):
    """Schema for sending one notification to many users."""

    recipient_ids: List[int] = Field(..., min_length=1, description="Users to notify")
    type: NotificationType = Field(NotificationType.ANNOUNCEMENT, description="Notification type")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    data: Optional[Dict[str, Any]] = None
    priority: NotificationPriority = NotificationPriority.MEDIUM

    @field_validator('recipient_ids')
    @classmethod
    def validate_recipients(cls, v):
        if any(recipient_id <= 0 for recipient_id in v):
            raise ValueError('Recipient IDs must be positive')
        return list(dict.fromkeys(v))


class BulkNotificationResponse(BaseModel):
    """Schema for bulk send results."""

    success: bool = True
    sent_count: int
    failed_count: int
    push_failed_count: int
    failed_recipients: List[int] = []
