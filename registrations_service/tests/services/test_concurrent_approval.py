"""
Concurrent approval tests.
The approved count for an event must never exceed its max seats, however
approvals interleave.
"""

import asyncio
import threading
import pytest
from datetime import date
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from sqlalchemy import event as sa_event
from unittest.mock import AsyncMock, patch

from app.core.errors import CapacityExceededError, LockUnavailableError
from app.db.database import DatabaseManager
from app.models.event import Event, EventCategory, EventStatus
from app.models.registration import Registration, RegistrationStatus
from app.services.capacity_service import CapacityService
from app.services.registration_service import RegistrationService
from conftest import ORGANIZER_ID, run_sync


async def approve_all(service, registration_ids):
    async def approve(registration_id):
        try:
            await service.approve(registration_id, ORGANIZER_ID, "organizer")
            return "approved"
        except CapacityExceededError:
            return "full"

    return await asyncio.gather(*(approve(rid) for rid in registration_ids))


@asynccontextmanager
async def no_lock(event_id):
    yield


def approve_in_thread(service, registration_id, barrier):
    """Approve on a fresh event loop once every worker is ready."""
    barrier.wait()
    try:
        asyncio.run(service.approve(registration_id, ORGANIZER_ID, "organizer"))
        return "approved"
    except CapacityExceededError:
        return "full"


@pytest.fixture
def file_db_manager(tmp_path):
    """
    File-backed SQLite, so every worker thread gets its own connection.
    Transactions open with BEGIN IMMEDIATE, taking the write lock before the
    capacity read the way the event row lock does on PostgreSQL.
    """
    manager = DatabaseManager()
    run_sync(manager.initialize(f"sqlite:///{tmp_path / 'registrations.db'}"))

    @sa_event.listens_for(manager.engine, "connect")
    def driver_autocommit(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @sa_event.listens_for(manager.engine, "begin")
    def begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    run_sync(manager.create_tables())
    yield manager
    run_sync(manager.close())


class TestConcurrentApproval:

    @pytest.mark.asyncio
    async def test_exactly_max_seats_approvals_succeed(self, registration_service, make_event, make_registration):
        """10 concurrent approvals against 3 seats: 3 succeed, 7 fail."""
        event = make_event(max_seats=3)
        registrations = [make_registration(event.id, participant_id) for participant_id in range(1, 11)]

        outcomes = await approve_all(registration_service, [r.id for r in registrations])

        assert outcomes.count("approved") == 3
        assert outcomes.count("full") == 7
        assert await registration_service.count_by_status(event.id, RegistrationStatus.APPROVED) == 3
        assert await registration_service.count_by_status(event.id, RegistrationStatus.PENDING) == 7

    @pytest.mark.asyncio
    async def test_conditional_update_holds_without_lock(self, registration_service, make_event, make_registration):
        """Interleaved coroutines on one connection still respect max seats."""
        event = make_event(max_seats=2)
        registrations = [make_registration(event.id, participant_id) for participant_id in range(1, 7)]

        @asynccontextmanager
        async def interleaving_lock(event_id):
            await asyncio.sleep(0)
            yield
            await asyncio.sleep(0)

        with patch.object(registration_service, "_approval_lock", interleaving_lock):
            outcomes = await approve_all(registration_service, [r.id for r in registrations])

        assert outcomes.count("approved") == 2
        assert outcomes.count("full") == 4
        assert await registration_service.count_by_status(event.id, RegistrationStatus.APPROVED) == 2

    @pytest.mark.asyncio
    async def test_separate_events_do_not_share_capacity(self, registration_service, make_event, make_registration):
        first = make_event(title="First", max_seats=1)
        second = make_event(title="Second", max_seats=1)
        ids = [
            make_registration(first.id, 1).id,
            make_registration(first.id, 2).id,
            make_registration(second.id, 1).id,
            make_registration(second.id, 2).id,
        ]

        outcomes = await approve_all(registration_service, ids)

        assert outcomes.count("approved") == 2
        assert await registration_service.count_by_status(first.id, RegistrationStatus.APPROVED) == 1
        assert await registration_service.count_by_status(second.id, RegistrationStatus.APPROVED) == 1

    @pytest.mark.asyncio
    async def test_distributed_lock_taken_per_event(
        self, db_manager, capacity_service, ticket_service, mock_redis_manager, make_event, make_registration
    ):
        service = RegistrationService(
            db_manager,
            capacity_service,
            ticket_service,
            redis_manager=mock_redis_manager,
            consistency_config={
                "enable_distributed_locks": True,
                "lock_timeout_seconds": 30,
                "lock_blocking_timeout_seconds": 10,
            },
        )
        event = make_event(max_seats=1)
        registration = make_registration(event.id, 100)

        await service.approve(registration.id, ORGANIZER_ID, "organizer")

        lock_key = mock_redis_manager.acquire_lock.call_args.args[0]
        assert lock_key == f"registration:approve:event:{event.id}"
        mock_redis_manager.release_lock.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unavailable_distributed_lock_aborts_approval(
        self, db_manager, capacity_service, ticket_service, mock_redis_manager, make_event, make_registration
    ):
        mock_redis_manager.acquire_lock = AsyncMock(return_value=False)
        service = RegistrationService(
            db_manager,
            capacity_service,
            ticket_service,
            redis_manager=mock_redis_manager,
            consistency_config={"enable_distributed_locks": True},
        )
        event = make_event()
        registration = make_registration(event.id, 100)

        with pytest.raises(LockUnavailableError):
            await service.approve(registration.id, ORGANIZER_ID, "organizer")

        unchanged = await service.get_registration(registration.id)
        assert unchanged.status == RegistrationStatus.PENDING


class TestParallelApproval:

    def test_separate_connections_never_overbook(self, file_db_manager, ticket_service):
        """Approvals racing on real threads, with no in-process lock, stop at max seats."""
        with file_db_manager.get_session() as session:
            event = Event(
                title="Hackathon", description="24 hour build", category=EventCategory.TECHNICAL,
                date=date(2026, 11, 20), time="10:00 AM", venue="Lab 1",
                max_seats=2, status=EventStatus.APPROVED, organizer_id=ORGANIZER_ID,
            )
            session.add(event)
            session.flush()
            event_id = event.id
            registrations = [Registration(event_id=event_id, participant_id=pid) for pid in range(1, 9)]
            session.add_all(registrations)
            session.flush()
            registration_ids = [r.id for r in registrations]

        service = RegistrationService(file_db_manager, CapacityService(file_db_manager), ticket_service)
        barrier = threading.Barrier(len(registration_ids))

        with patch.object(service, "_approval_lock", no_lock):
            with ThreadPoolExecutor(max_workers=len(registration_ids)) as pool:
                outcomes = list(pool.map(
                    lambda rid: approve_in_thread(service, rid, barrier), registration_ids
                ))

        assert outcomes.count("approved") == 2
        assert outcomes.count("full") == 6
        assert run_sync(service.count_by_status(event_id, RegistrationStatus.APPROVED)) == 2
