"""
Email Service for Registrations Service.
Hands registration emails to the Celery email workers. Delivery itself
happens in the workers; this side only dispatches tasks.
"""
import ssl
import logging
from typing import Optional, Dict, Any

from celery import Celery

logger = logging.getLogger(__name__)

EMAIL_QUEUE = 'email_notifications'


class EmailDispatcher:
    """
    Dispatches email tasks to Celery workers.
    Workers look up the recipient's address from the user ID.
    """

    def __init__(self, broker_url: Optional[str] = None, enabled: bool = True, celery_app: Optional[Celery] = None):
        self.broker_url = broker_url
        self.enabled = enabled
        self._celery_app = celery_app
        self._initialized = celery_app is not None

    def _initialize_celery(self):
        """Create the Celery app used only for task dispatch."""
        if self._initialized:
            return

        try:
            self._celery_app = Celery('registrations_service')
            conf = dict(
                broker_url=self.broker_url,
                result_backend=self.broker_url,
                task_serializer='json',
                result_serializer='json',
                accept_content=['json'],
                task_routes={
                    'email_workers.tasks.*': {'queue': EMAIL_QUEUE},
                },
            )
            if self.broker_url and self.broker_url.startswith('rediss://'):
                conf['broker_use_ssl'] = {'ssl_cert_reqs': ssl.CERT_NONE}
                conf['redis_backend_use_ssl'] = {'ssl_cert_reqs': ssl.CERT_NONE}
            self._celery_app.conf.update(**conf)

            self._initialized = True
            logger.info("Celery app initialized for email dispatch")

        except Exception as e:
            logger.error(f"Failed to initialize Celery app: {e}")
            self._celery_app = None
            self._initialized = False

    async def _send_email_task(self, task_name: str, user_id: int, data: Dict[str, Any]) -> bool:
        """
        Send an email task to the workers.

        Returns:
            True if the task was queued, False otherwise
        """
        if not self.enabled:
            logger.info(f"Email notifications disabled, skipping {task_name}")
            return True

        try:
            if not self._initialized:
                self._initialize_celery()

            if not self._celery_app:
                logger.error("Celery app not initialized, cannot send email task")
                return False

            task = self._celery_app.send_task(
                task_name,
                args=[user_id, data],
                queue=EMAIL_QUEUE
            )

            logger.info(f"Email task {task_name} sent for user {user_id} with ID: {task.id}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email task {task_name}: {e}")
            return False

    async def send_new_registration(self, organizer_id: int, event: Dict[str, Any], participant_id: int) -> bool:
        """Tell the organizer someone registered for their event."""
        return await self._send_email_task(
            'email_workers.tasks.send_new_registration',
            organizer_id,
            {
                'event_id': event.get('id'),
                'event_title': event.get('title'),
                'participant_id': participant_id,
            }
        )

    async def send_registration_approved(self, participant_id: int, event: Dict[str, Any], registration_id: int) -> bool:
        """Tell the participant their registration was approved."""
        return await self._send_email_task(
            'email_workers.tasks.send_registration_approval',
            participant_id,
            {
                'registration_id': registration_id,
                'event_id': event.get('id'),
                'event_title': event.get('title'),
                'event_date': event.get('date'),
                'event_time': event.get('time'),
                'venue': event.get('venue'),
            }
        )

    async def send_registration_rejected(self, participant_id: int, event: Dict[str, Any], registration_id: int) -> bool:
        """Tell the participant their registration was rejected."""
        return await self._send_email_task(
            'email_workers.tasks.send_registration_rejection',
            participant_id,
            {
                'registration_id': registration_id,
                'event_id': event.get('id'),
                'event_title': event.get('title'),
            }
        )
