"""
Notification Publisher for Registrations Service.
Pushes stored notifications to connected clients over Redis pub/sub.
Delivery is best effort: nobody waits for confirmation.
"""

import json
import logging
from typing import Dict, Any

from app.db.redis_client import RedisManager

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """
    Publishes notification payloads on per-recipient Redis channels.
    A websocket gateway subscribed to these channels forwards them to clients.
    """

    def __init__(self, redis_manager: RedisManager):
        self.redis_manager = redis_manager
        self.channel_prefix = "eventsphere:notifications"

    def channel_for(self, recipient_id: int) -> str:
        return f"{self.channel_prefix}:{recipient_id}"

    async def push(self, recipient_id: int, payload: Dict[str, Any]) -> int:
        """
        Push a payload to one recipient.

        Returns:
            Number of live subscribers that received it

        Raises:
            Exception: Any transport failure, left for the caller to log
        """
        channel = self.channel_for(recipient_id)
        message = {
            "type": "notification",
            "recipient_id": recipient_id,
            "notification": payload,
        }

        receivers = await self.redis_manager.publish(channel, json.dumps(message, default=str))
        logger.debug(f"Pushed notification {payload.get('id')} to {channel} ({receivers} receivers)")
        return receivers
