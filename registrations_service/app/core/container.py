"""
Service wiring for Registrations Service.
Built once at startup and kept on the FastAPI app state.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from app.core.config import config
from app.db.database import DatabaseManager
from app.db.redis_client import RedisManager
from app.services.approval_workflow import ApprovalWorkflow
from app.services.attendance_service import AttendanceService
from app.services.background import BackgroundDispatcher
from app.services.capacity_service import CapacityService
from app.services.certificate_service import CertificateService
from app.services.email_service import EmailDispatcher
from app.services.notification_publisher import NotificationPublisher
from app.services.notification_service import NotificationService
from app.services.registration_service import RegistrationService
from app.services.ticket_service import TicketService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Every collaborator the API layer needs."""

    db_manager: DatabaseManager
    redis_manager: Optional[RedisManager]
    jwt_secret: str
    jwt_algorithm: str
    dispatcher: BackgroundDispatcher
    capacity_service: CapacityService
    registration_service: RegistrationService
    notification_service: NotificationService
    workflow: ApprovalWorkflow
    attendance_service: AttendanceService
    certificate_service: CertificateService

    async def close(self):
        """Drain side effects, then release connections."""
        await self.dispatcher.drain()
        if self.redis_manager is not None:
            await self.redis_manager.close()
        await self.db_manager.close()


def wire_services(
    db_manager: DatabaseManager,
    redis_manager: Optional[RedisManager],
    email_dispatcher: EmailDispatcher,
    jwt_secret: str,
    jwt_algorithm: str = "HS256",
    publisher: Optional[NotificationPublisher] = None,
    consistency_config: Optional[dict] = None,
    registration_config: Optional[dict] = None,
    notification_config: Optional[dict] = None
) -> ServiceContainer:
    """Assemble services from already initialized infrastructure."""
    registration_config = registration_config or {}
    notification_config = notification_config or {}

    dispatcher = BackgroundDispatcher()
    capacity_service = CapacityService(db_manager)
    ticket_service = TicketService(
        frontend_url=registration_config.get("frontend_url", "http://localhost:3000"),
        duration_minutes=registration_config.get("ticket_duration_minutes", 60)
    )
    registration_service = RegistrationService(
        db_manager,
        capacity_service,
        ticket_service,
        redis_manager=redis_manager,
        consistency_config=consistency_config
    )
    notification_service = NotificationService(
        db_manager,
        publisher=publisher,
        ttl_days=notification_config.get("ttl_days", 30),
        enable_realtime_push=notification_config.get("enable_realtime_push", True),
        bulk_max_recipients=notification_config.get("bulk_max_recipients", 1000)
    )

    return ServiceContainer(
        db_manager=db_manager,
        redis_manager=redis_manager,
        jwt_secret=jwt_secret,
        jwt_algorithm=jwt_algorithm,
        dispatcher=dispatcher,
        capacity_service=capacity_service,
        registration_service=registration_service,
        notification_service=notification_service,
        workflow=ApprovalWorkflow(registration_service, notification_service, email_dispatcher, dispatcher),
        attendance_service=AttendanceService(db_manager),
        certificate_service=CertificateService(db_manager),
    )


async def build_container() -> ServiceContainer:
    """Initialize infrastructure from configuration and wire the services."""
    db_manager = DatabaseManager()
    await db_manager.initialize()

    redis_url = await config.get_redis_url()
    redis_manager = RedisManager()
    await redis_manager.initialize(redis_url)

    jwt_settings = await config.get_jwt_settings()
    notification_config = await config.get_notification_config()
    email_dispatcher = EmailDispatcher(
        broker_url=redis_url,
        enabled=notification_config["enable_email_notifications"]
    )

    container = wire_services(
        db_manager=db_manager,
        redis_manager=redis_manager,
        email_dispatcher=email_dispatcher,
        jwt_secret=jwt_settings["secret"],
        jwt_algorithm=jwt_settings["algorithm"],
        publisher=NotificationPublisher(redis_manager),
        consistency_config=await config.get_consistency_config(),
        registration_config=await config.get_registration_config(),
        notification_config=notification_config,
    )
    logger.info("Registrations service container built")
    return container
