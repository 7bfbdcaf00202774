"""
Test configuration and fixtures for Registrations Service.
Focuses on the approval capacity gate and notification fan-out.
"""

import os

# Config is built at import time and refuses to start without a token
os.environ.setdefault("ZERO_TOKEN", "test-token")

import asyncio
import pytest
import jwt
from datetime import date, datetime, timezone, timedelta
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from app.core.container import wire_services
from app.db.database import DatabaseManager
from app.main import app
from app.models.event import Event, EventStatus, EventCategory
from app.models.notification import Notification, NotificationType, NotificationPriority
from app.models.registration import Registration, RegistrationStatus
from app.services.approval_workflow import ApprovalWorkflow
from app.services.background import BackgroundDispatcher
from app.services.capacity_service import CapacityService
from app.services.notification_service import NotificationService
from app.services.registration_service import RegistrationService
from app.services.ticket_service import TicketService

TEST_JWT_SECRET = "test-secret"
ORGANIZER_ID = 10
ADMIN_ID = 1


def run_sync(coro):
    """Run a coroutine on a private loop, leaving the current loop alone."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def db_manager():
    """In-memory SQLite database manager with all tables created."""
    manager = DatabaseManager()
    run_sync(manager.initialize("sqlite://"))
    run_sync(manager.create_tables())
    yield manager
    run_sync(manager.drop_tables())
    run_sync(manager.close())


@pytest.fixture
def make_event(db_manager):
    """Factory creating events directly in the database."""

    def _make_event(**overrides) -> Event:
        values = {
            "title": "Tech Fest",
            "description": "Annual technical festival",
            "category": EventCategory.TECHNICAL,
            "date": date(2026, 11, 20),
            "time": "10:00 AM",
            "venue": "Main Auditorium",
            "max_seats": 2,
            "status": EventStatus.APPROVED,
            "organizer_id": ORGANIZER_ID,
        }
        values.update(overrides)
        with db_manager.get_session() as session:
            event = Event(**values)
            session.add(event)
            session.flush()
            session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def make_registration(db_manager):
    """Factory creating registrations directly in the database."""

    def _make_registration(event_id: int, participant_id: int,
                           status: RegistrationStatus = RegistrationStatus.PENDING) -> Registration:
        with db_manager.get_session() as session:
            registration = Registration(event_id=event_id, participant_id=participant_id, status=status)
            session.add(registration)
            session.flush()
            session.refresh(registration)
        return registration

    return _make_registration


@pytest.fixture
def make_notification(db_manager):
    """Factory creating notifications directly in the database."""

    def _make_notification(recipient_id: int, is_read: bool = False, expired: bool = False,
                           type: NotificationType = NotificationType.SYSTEM) -> Notification:
        now = datetime.now(timezone.utc)
        with db_manager.get_session() as session:
            notification = Notification(
                recipient_id=recipient_id,
                type=type,
                title="Heads up",
                message="Something happened",
                data={},
                priority=NotificationPriority.MEDIUM,
                is_read=is_read,
                read_at=now if is_read else None,
                expires_at=now - timedelta(days=1) if expired else now + timedelta(days=30),
            )
            session.add(notification)
            session.flush()
            session.refresh(notification)
        return notification

    return _make_notification


@pytest.fixture
def ticket_service():
    return TicketService(frontend_url="http://localhost:3000", duration_minutes=60)


@pytest.fixture
def capacity_service(db_manager):
    return CapacityService(db_manager)


@pytest.fixture
def registration_service(db_manager, capacity_service, ticket_service):
    return RegistrationService(db_manager, capacity_service, ticket_service)


@pytest.fixture
def mock_publisher():
    """Real-time publisher whose pushes always succeed."""
    publisher = MagicMock()
    publisher.push = AsyncMock(return_value=1)
    return publisher


@pytest.fixture
def notification_service(db_manager, mock_publisher):
    return NotificationService(db_manager, publisher=mock_publisher, ttl_days=30)


@pytest.fixture
def mock_email_dispatcher():
    """Email dispatcher that never touches Celery."""
    dispatcher = MagicMock()
    dispatcher.send_new_registration = AsyncMock(return_value=True)
    dispatcher.send_registration_approved = AsyncMock(return_value=True)
    dispatcher.send_registration_rejected = AsyncMock(return_value=True)
    return dispatcher


@pytest.fixture
def background_dispatcher():
    return BackgroundDispatcher()


@pytest.fixture
def workflow(registration_service, notification_service, mock_email_dispatcher, background_dispatcher):
    return ApprovalWorkflow(registration_service, notification_service, mock_email_dispatcher, background_dispatcher)


@pytest.fixture
def mock_redis_manager():
    """Mock Redis manager for testing."""
    mock_redis = MagicMock()
    mock_redis.acquire_lock = AsyncMock(return_value=True)
    mock_redis.release_lock = AsyncMock(return_value=True)
    mock_redis.publish = AsyncMock(return_value=1)
    mock_redis.health_check = AsyncMock(return_value=True)
    mock_redis.close = AsyncMock()
    return mock_redis


@pytest.fixture
def container(db_manager, mock_redis_manager, mock_email_dispatcher, mock_publisher):
    return wire_services(
        db_manager=db_manager,
        redis_manager=mock_redis_manager,
        email_dispatcher=mock_email_dispatcher,
        jwt_secret=TEST_JWT_SECRET,
        publisher=mock_publisher,
        consistency_config={"enable_distributed_locks": False},
    )


@pytest.fixture
def client(container):
    """Test client bound to the test container; the lifespan is not run."""
    app.state.container = container
    yield TestClient(app)
    del app.state.container


def make_token(user_id: int, role: str = "participant", expired: bool = False) -> str:
    exp = datetime.now(timezone.utc) + (timedelta(minutes=-5) if expired else timedelta(hours=1))
    return jwt.encode({"user_id": user_id, "role": role, "exp": exp}, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: int, role: str = "participant") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def participant_headers():
    return auth_headers(100, "participant")


@pytest.fixture
def organizer_headers():
    return auth_headers(ORGANIZER_ID, "organizer")


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, "admin")
