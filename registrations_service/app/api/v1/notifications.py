"""
Notification API endpoints for Registrations Service.
In-app notification inbox for the current user plus admin bulk send.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import Optional
import logging
import math

from app.api.dependencies import get_authenticated_user, get_admin_user, get_container
from app.core.container import ServiceContainer
from app.models.notification import NotificationType, NotificationPriority
from app.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    NotificationStatsResponse,
    NotificationCountResponse,
    BulkNotificationRequest,
    BulkNotificationResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Number of items per page"),
    type: Optional[NotificationType] = Query(None, description="Filter by type"),
    is_read: Optional[bool] = Query(None, description="Filter by read state"),
    priority: Optional[NotificationPriority] = Query(None, description="Filter by priority"),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """
    Get the current user's notifications, newest first. Expired ones are never listed.
    """
    service = container.notification_service
    user_id = user_info["user_id"]

    notifications, total = await service.list_notifications(
        user_id, page=page, limit=limit, type=type, is_read=is_read, priority=priority
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
        unread_count=await service.unread_count(user_id)
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    count = await container.notification_service.unread_count(user_info["user_id"])
    return UnreadCountResponse(unread_count=count)


@router.get("/stats", response_model=NotificationStatsResponse)
async def get_notification_stats(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    stats = await container.notification_service.get_stats(user_info["user_id"])
    return NotificationStatsResponse(**stats)


@router.put("/read-all", response_model=NotificationCountResponse)
async def mark_all_read(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Mark every unread notification as read."""
    count = await container.notification_service.mark_all_read(user_info["user_id"])
    return NotificationCountResponse(message=f"{count} notifications marked as read", count=count)


@router.delete("/read", response_model=NotificationCountResponse)
async def delete_read_notifications(
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Delete all read notifications of the current user."""
    count = await container.notification_service.delete_read(user_info["user_id"])
    return NotificationCountResponse(message=f"{count} read notifications deleted", count=count)


@router.post("/bulk", response_model=BulkNotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_bulk_notification(
    request: BulkNotificationRequest,
    admin_info: dict = Depends(get_admin_user),
    container: ServiceContainer = Depends(get_container)
):
    """
    Send one notification to many users (admin only).
    A recipient counts as sent once stored, whether or not the live push worked.
    """
    logger.info(f"Admin {admin_info['user_id']} sending bulk notification to {len(request.recipient_ids)} users")
    result = await container.notification_service.send_bulk(
        request.recipient_ids,
        type=request.type,
        title=request.title,
        message=request.message,
        data=request.data,
        priority=request.priority
    )
    return BulkNotificationResponse(**result.to_dict())


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    notification = await container.notification_service.get_notification(notification_id, user_info["user_id"])
    return NotificationResponse.model_validate(notification)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    """Mark one notification as read. Repeating it changes nothing."""
    notification = await container.notification_service.mark_read(notification_id, user_info["user_id"])
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=NotificationCountResponse)
async def delete_notification(
    notification_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user),
    container: ServiceContainer = Depends(get_container)
):
    await container.notification_service.delete_notification(notification_id, user_info["user_id"])
    return NotificationCountResponse(message="Notification deleted", count=1)
