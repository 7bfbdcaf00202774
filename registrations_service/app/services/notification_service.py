"""
Notification Service for Registrations Service.
Stores in-app notifications durably and fans them out over the real-time
channel on a best-effort basis.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import and_, delete, func, select, update
import logging

from app.core.errors import NotFoundError, InvalidInputError
from app.models.notification import Notification, NotificationType, NotificationPriority
from app.services.notification_publisher import NotificationPublisher

logger = logging.getLogger(__name__)


@dataclass
class BulkSendResult:
    """
    Outcome of a multi-recipient send. A recipient counts as sent once its
    notification is stored; push failures are reported separately.
    """

    sent_count: int = 0
    failed_count: int = 0
    push_failed_count: int = 0
    failed_recipients: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
            "push_failed_count": self.push_failed_count,
            "failed_recipients": self.failed_recipients,
        }


class NotificationService:
    """
    Notification fan-out with time-to-live semantics.
    Every read path filters on expires_at > now.
    """

    def __init__(
        self,
        db_manager,
        publisher: Optional[NotificationPublisher] = None,
        ttl_days: int = 30,
        enable_realtime_push: bool = True,
        bulk_max_recipients: int = 1000
    ):
        self.db_manager = db_manager
        self.publisher = publisher
        self.ttl = timedelta(days=ttl_days)
        self.enable_realtime_push = enable_realtime_push
        self.bulk_max_recipients = bulk_max_recipients

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _live(self, user_id: int, now: datetime):
        """Filter for a recipient's unexpired notifications."""
        return and_(Notification.recipient_id == user_id, Notification.expires_at > now)

    async def send(
        self,
        recipient_id: int,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        expires_at: Optional[datetime] = None
    ) -> Notification:
        """
        Store a notification, then try to push it live.

        Args:
            recipient_id: ID of the receiving user
            type: Notification type
            title: Short title
            message: Body text
            data: Free-form payload
            priority: Priority level
            expires_at: Explicit expiry; defaults to now plus the TTL

        Returns:
            The stored notification. Push failures do not affect it.
        """
        notification = await self._store(
            recipient_id, type, title, message, data, priority, expires_at
        )
        await self._push(notification)
        return notification

    async def _store(self, recipient_id, type, title, message, data, priority, expires_at) -> Notification:
        now = self._now()
        with self.db_manager.get_session() as session:
            notification = Notification(
                recipient_id=recipient_id,
                type=type,
                title=title,
                message=message,
                data=data or {},
                priority=priority,
                is_read=False,
                expires_at=expires_at or now + self.ttl,
                created_at=now,
                updated_at=now
            )
            session.add(notification)
            session.flush()
            logger.info(f"Notification {notification.id} stored for user {recipient_id} ({type.value})")
        return notification

    async def _push(self, notification: Notification) -> bool:
        """Best-effort live delivery. Returns False when the push failed."""
        if not self.enable_realtime_push or self.publisher is None:
            return True
        try:
            await self.publisher.push(notification.recipient_id, notification.to_push_payload())
            return True
        except Exception as e:
            logger.error(
                f"Real-time push failed for notification {notification.id} "
                f"to user {notification.recipient_id}: {e}"
            )
            return False

    async def send_bulk(
        self,
        recipient_ids: List[int],
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM
    ) -> BulkSendResult:
        """
        Send the same notification to many recipients.
        Each recipient is handled independently; one failure never stops the rest.

        Raises:
            InvalidInputError: If recipients, title or message are missing
        """
        if not recipient_ids:
            raise InvalidInputError("Recipient IDs are required")
        if not title or not message:
            raise InvalidInputError("Title and message are required")
        if len(recipient_ids) > self.bulk_max_recipients:
            raise InvalidInputError(f"At most {self.bulk_max_recipients} recipients per request")

        result = BulkSendResult()
        logger.info(f"Sending bulk notification to {len(recipient_ids)} recipients")

        for recipient_id in recipient_ids:
            try:
                notification = await self._store(
                    recipient_id, type, title, message, data, priority, None
                )
            except Exception as e:
                logger.error(f"Error sending notification to {recipient_id}: {e}")
                result.failed_count += 1
                result.failed_recipients.append(recipient_id)
                continue

            result.sent_count += 1
            if not await self._push(notification):
                result.push_failed_count += 1

        logger.info(
            f"Bulk notification finished: sent={result.sent_count} "
            f"failed={result.failed_count} push_failed={result.push_failed_count}"
        )
        return result

    async def list_notifications(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        type: Optional[NotificationType] = None,
        is_read: Optional[bool] = None,
        priority: Optional[NotificationPriority] = None
    ) -> Tuple[List[Notification], int]:
        """
        Get a page of a user's live notifications, newest first.

        Returns:
            Tuple of (notifications list, total count)
        """
        conditions = [self._live(user_id, self._now())]
        if type is not None:
            conditions.append(Notification.type == type)
        if is_read is not None:
            conditions.append(Notification.is_read == is_read)
        if priority is not None:
            conditions.append(Notification.priority == priority)

        with self.db_manager.get_session() as session:
            total = session.execute(
                select(func.count(Notification.id)).where(*conditions)
            ).scalar_one()

            offset = (page - 1) * limit
            notifications = session.execute(
                select(Notification)
                .where(*conditions)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .offset(offset)
                .limit(limit)
            ).scalars().all()

            return list(notifications), total

    async def get_notification(self, notification_id: int, user_id: int) -> Notification:
        """
        Raises:
            NotFoundError: If missing, expired or owned by someone else
        """
        with self.db_manager.get_session() as session:
            notification = session.execute(
                select(Notification).where(
                    Notification.id == notification_id,
                    self._live(user_id, self._now())
                )
            ).scalar_one_or_none()

            if not notification:
                raise NotFoundError("Notification", notification_id)
            return notification

    async def unread_count(self, user_id: int) -> int:
        with self.db_manager.get_session() as session:
            return session.execute(
                select(func.count(Notification.id)).where(
                    self._live(user_id, self._now()),
                    Notification.is_read.is_(False)
                )
            ).scalar_one()

    async def mark_read(self, notification_id: int, user_id: int) -> Notification:
        """
        Mark one notification as read. Idempotent: an already read
        notification keeps its original read_at.

        Raises:
            NotFoundError: If missing, expired or owned by someone else
        """
        now = self._now()
        with self.db_manager.get_session() as session:
            notification = session.execute(
                select(Notification).where(
                    Notification.id == notification_id,
                    self._live(user_id, now)
                )
            ).scalar_one_or_none()

            if not notification:
                raise NotFoundError("Notification", notification_id)

            if not notification.is_read:
                notification.is_read = True
                notification.read_at = now
                session.flush()

            return notification

    async def mark_all_read(self, user_id: int) -> int:
        """
        Mark every unread live notification as read.

        Returns:
            Number of notifications changed
        """
        now = self._now()
        with self.db_manager.get_session() as session:
            result = session.execute(
                update(Notification)
                .where(self._live(user_id, now), Notification.is_read.is_(False))
                .values(is_read=True, read_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
            return result.rowcount

    async def delete_notification(self, notification_id: int, user_id: int):
        """
        Raises:
            NotFoundError: If missing or owned by someone else
        """
        with self.db_manager.get_session() as session:
            result = session.execute(
                delete(Notification)
                .where(Notification.id == notification_id, Notification.recipient_id == user_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Notification", notification_id)

    async def delete_read(self, user_id: int) -> int:
        """
        Purge a user's read notifications.

        Returns:
            Number of notifications deleted
        """
        with self.db_manager.get_session() as session:
            result = session.execute(
                delete(Notification)
                .where(Notification.recipient_id == user_id, Notification.is_read.is_(True))
                .execution_options(synchronize_session=False)
            )
            logger.info(f"Deleted {result.rowcount} read notifications for user {user_id}")
            return result.rowcount

    async def get_stats(self, user_id: int) -> Dict[str, Any]:
        """Counts of a user's live notifications: total, unread, read and per type."""
        live = self._live(user_id, self._now())
        with self.db_manager.get_session() as session:
            rows = session.execute(
                select(Notification.type, Notification.is_read, func.count(Notification.id))
                .where(live)
                .group_by(Notification.type, Notification.is_read)
            ).all()

        by_type: Dict[str, int] = {}
        unread = read = 0
        for notification_type, is_read, count in rows:
            by_type[notification_type.value] = by_type.get(notification_type.value, 0) + count
            if is_read:
                read += count
            else:
                unread += count

        return {"total": unread + read, "unread": unread, "read": read, "by_type": by_type}

    async def purge_expired(self) -> int:
        """
        Physically delete expired notifications. Queries already ignore them,
        so this only reclaims storage.
        """
        with self.db_manager.get_session() as session:
            result = session.execute(
                delete(Notification)
                .where(Notification.expires_at <= self._now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                logger.info(f"Purged {result.rowcount} expired notifications")
            return result.rowcount
