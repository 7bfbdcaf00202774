"""
Tests for the background dispatcher, email dispatch and the real-time publisher.
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.services.background import BackgroundDispatcher
from app.services.email_service import EmailDispatcher, EMAIL_QUEUE
from app.services.notification_publisher import NotificationPublisher


class TestBackgroundDispatcher:

    @pytest.mark.asyncio
    async def test_failures_are_contained(self):
        dispatcher = BackgroundDispatcher()
        results = []

        async def succeed():
            results.append("ok")

        async def fail():
            raise RuntimeError("boom")

        dispatcher.dispatch(fail(), "failing side effect")
        dispatcher.dispatch(succeed(), "working side effect")
        await dispatcher.drain()

        assert results == ["ok"]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_stragglers(self):
        dispatcher = BackgroundDispatcher()
        task = dispatcher.dispatch(asyncio.sleep(60), "slow side effect")

        await dispatcher.drain(timeout=0.01)
        await asyncio.sleep(0)

        assert task.cancelled()


class TestEmailDispatcher:

    @pytest.mark.asyncio
    async def test_sends_task_to_email_queue(self):
        celery_app = MagicMock()
        celery_app.send_task.return_value = MagicMock(id="task-1")
        emails = EmailDispatcher(celery_app=celery_app)

        sent = await emails.send_registration_approved(100, {"id": 3, "title": "Tech Fest"}, 12)

        assert sent is True
        args, kwargs = celery_app.send_task.call_args
        assert args[0] == "email_workers.tasks.send_registration_approval"
        assert kwargs["args"][0] == 100
        assert kwargs["args"][1]["registration_id"] == 12
        assert kwargs["queue"] == EMAIL_QUEUE

    @pytest.mark.asyncio
    async def test_broker_failure_returns_false(self):
        celery_app = MagicMock()
        celery_app.send_task.side_effect = ConnectionError("broker unreachable")
        emails = EmailDispatcher(celery_app=celery_app)

        assert await emails.send_new_registration(10, {"id": 3, "title": "Tech Fest"}, 100) is False

    @pytest.mark.asyncio
    async def test_disabled_skips_dispatch(self):
        celery_app = MagicMock()
        emails = EmailDispatcher(celery_app=celery_app, enabled=False)

        assert await emails.send_registration_rejected(100, {"id": 3}, 12) is True
        celery_app.send_task.assert_not_called()


class TestNotificationPublisher:

    @pytest.mark.asyncio
    async def test_publishes_on_recipient_channel(self):
        redis_manager = MagicMock()
        redis_manager.publish = AsyncMock(return_value=2)
        publisher = NotificationPublisher(redis_manager)

        receivers = await publisher.push(7, {"id": 1, "title": "Hi"})

        assert receivers == 2
        channel, message = redis_manager.publish.call_args.args
        assert channel == "eventsphere:notifications:7"
        assert json.loads(message) == {
            "type": "notification",
            "recipient_id": 7,
            "notification": {"id": 1, "title": "Hi"},
        }

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        redis_manager = MagicMock()
        redis_manager.publish = AsyncMock(side_effect=ConnectionError("redis down"))
        publisher = NotificationPublisher(redis_manager)

        with pytest.raises(ConnectionError):
            await publisher.push(7, {"id": 1})
