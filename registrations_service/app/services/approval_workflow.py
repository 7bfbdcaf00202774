"""
Approval Workflow for Registrations Service.
Runs the registration state changes the API exposes and hangs their
notification and email side effects off the request path.
"""

from typing import Optional, Dict, Tuple
import logging

from app.models.notification import NotificationType, NotificationPriority
from app.models.registration import Registration
from app.services.background import BackgroundDispatcher
from app.services.email_service import EmailDispatcher
from app.services.notification_service import NotificationService
from app.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """
    Orchestrates the ledger with fan-out.
    Domain errors from the ledger reach the caller synchronously; side effects
    are dispatched in the background and their failures are only logged.
    """

    def __init__(
        self,
        registration_service: RegistrationService,
        notification_service: NotificationService,
        email_dispatcher: EmailDispatcher,
        dispatcher: BackgroundDispatcher
    ):
        self.registration_service = registration_service
        self.notification_service = notification_service
        self.email_dispatcher = email_dispatcher
        self.dispatcher = dispatcher

    async def register(self, event_id: int, participant_id: int) -> Tuple[Registration, Dict[str, int]]:
        """Register a participant and let the organizer know by email."""
        registration, counts = await self.registration_service.create(event_id, participant_id)

        event = registration.event
        self.dispatcher.dispatch(
            self.email_dispatcher.send_new_registration(event.organizer_id, event.to_dict(), participant_id),
            f"new registration email for event {event_id} to organizer {event.organizer_id}"
        )
        return registration, counts

    async def approve(self, registration_id: int, actor_id: int, actor_role: Optional[str]) -> Registration:
        """
        Approve a registration, then notify the participant in-app and by email.
        """
        registration = await self.registration_service.approve(registration_id, actor_id, actor_role)

        event = registration.event
        self.dispatcher.dispatch(
            self.notification_service.send(
                recipient_id=registration.participant_id,
                type=NotificationType.REGISTRATION,
                title="Registration approved",
                message=f"Your registration for {event.title} has been approved. Your ticket is ready.",
                data={"registration_id": registration.id, "event_id": event.id, "status": "approved"},
                priority=NotificationPriority.HIGH
            ),
            f"approval notification for registration {registration.id}"
        )
        self.dispatcher.dispatch(
            self.email_dispatcher.send_registration_approved(registration.participant_id, event.to_dict(), registration.id),
            f"approval email for registration {registration.id}"
        )
        return registration

    async def reject(self, registration_id: int, actor_id: int, actor_role: Optional[str]) -> Registration:
        """
        Reject a registration, then notify the participant in-app and by email.
        """
        registration = await self.registration_service.reject(registration_id, actor_id, actor_role)

        event = registration.event
        self.dispatcher.dispatch(
            self.notification_service.send(
                recipient_id=registration.participant_id,
                type=NotificationType.REGISTRATION,
                title="Registration rejected",
                message=f"Your registration for {event.title} was not approved.",
                data={"registration_id": registration.id, "event_id": event.id, "status": "rejected"}
            ),
            f"rejection notification for registration {registration.id}"
        )
        self.dispatcher.dispatch(
            self.email_dispatcher.send_registration_rejected(registration.participant_id, event.to_dict(), registration.id),
            f"rejection email for registration {registration.id}"
        )
        return registration

    async def cancel(self, registration_id: int, participant_id: int) -> Tuple[Registration, Dict[str, int]]:
        """Participant withdrawal. A freed seat is visible to the next approval at once."""
        return await self.registration_service.cancel(registration_id, participant_id)
