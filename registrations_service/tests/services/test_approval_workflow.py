"""
Tests for approval orchestration and its fire-and-forget side effects.
"""

import pytest
from unittest.mock import AsyncMock

from app.core.errors import CapacityExceededError, ForbiddenError
from app.models.notification import NotificationType
from app.models.registration import RegistrationStatus
from conftest import ORGANIZER_ID


class TestApprovalWorkflow:

    @pytest.mark.asyncio
    async def test_register_emails_organizer(self, workflow, background_dispatcher, mock_email_dispatcher, make_event):
        event = make_event()

        registration, counts = await workflow.register(event.id, 100)
        await background_dispatcher.drain()

        assert counts == {"approved": 0, "pending": 1}
        mock_email_dispatcher.send_new_registration.assert_awaited_once()
        organizer_id, event_data, participant_id = mock_email_dispatcher.send_new_registration.call_args.args
        assert organizer_id == ORGANIZER_ID
        assert event_data["title"] == "Tech Fest"
        assert participant_id == 100

    @pytest.mark.asyncio
    async def test_approve_notifies_participant(
        self, workflow, background_dispatcher, notification_service, mock_email_dispatcher, make_event, make_registration
    ):
        event = make_event()
        registration = make_registration(event.id, 100)

        approved = await workflow.approve(registration.id, ORGANIZER_ID, "organizer")
        await background_dispatcher.drain()

        assert approved.status == RegistrationStatus.APPROVED
        notifications, total = await notification_service.list_notifications(100)
        assert total == 1
        assert notifications[0].type == NotificationType.REGISTRATION
        assert notifications[0].data["registration_id"] == registration.id
        mock_email_dispatcher.send_registration_approved.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_approval(
        self, workflow, background_dispatcher, notification_service, make_event, make_registration
    ):
        event = make_event()
        registration = make_registration(event.id, 100)
        notification_service.send = AsyncMock(side_effect=RuntimeError("store unavailable"))

        approved = await workflow.approve(registration.id, ORGANIZER_ID, "organizer")
        await background_dispatcher.drain()

        assert approved.status == RegistrationStatus.APPROVED
        assert background_dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_capacity_failure_has_no_side_effects(
        self, workflow, background_dispatcher, mock_email_dispatcher, make_event, make_registration
    ):
        event = make_event(max_seats=1)
        make_registration(event.id, 1, RegistrationStatus.APPROVED)
        registration = make_registration(event.id, 2)

        with pytest.raises(CapacityExceededError):
            await workflow.approve(registration.id, ORGANIZER_ID, "organizer")
        await background_dispatcher.drain()

        mock_email_dispatcher.send_registration_approved.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_forbidden_is_synchronous(self, workflow, make_event, make_registration):
        event = make_event()
        registration = make_registration(event.id, 100)

        with pytest.raises(ForbiddenError):
            await workflow.approve(registration.id, 999, "organizer")

    @pytest.mark.asyncio
    async def test_reject_emails_participant(
        self, workflow, background_dispatcher, notification_service, mock_email_dispatcher, make_event, make_registration
    ):
        event = make_event()
        registration = make_registration(event.id, 100)

        rejected = await workflow.reject(registration.id, ORGANIZER_ID, "organizer")
        await background_dispatcher.drain()

        assert rejected.status == RegistrationStatus.REJECTED
        mock_email_dispatcher.send_registration_rejected.assert_awaited_once()
        _, total = await notification_service.list_notifications(100)
        assert total == 1

    @pytest.mark.asyncio
    async def test_cancel_returns_counts(self, workflow, make_event, make_registration):
        event = make_event()
        registration = make_registration(event.id, 100, RegistrationStatus.APPROVED)

        cancelled, counts = await workflow.cancel(registration.id, 100)

        assert cancelled.status == RegistrationStatus.CANCELLED
        assert counts == {"approved": 0, "pending": 0}
