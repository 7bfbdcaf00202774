"""
Tests for live seat availability.
"""

import pytest

from app.core.errors import NotFoundError
from app.models.registration import RegistrationStatus
from app.services.capacity_service import SeatAvailability, compute_available_seats


class TestComputeAvailableSeats:

    @pytest.mark.parametrize("max_seats,approved,expected", [
        (10, 0, 10),
        (10, 4, 6),
        (10, 10, 0),
        (5, 7, 0),
    ])
    def test_never_negative(self, max_seats, approved, expected):
        assert compute_available_seats(max_seats, approved) == expected

    def test_snapshot_to_dict(self):
        snapshot = SeatAvailability(event_id=3, max_seats=50, booked_seats=12)

        assert snapshot.to_dict() == {
            "event_id": 3,
            "available_seats": 38,
            "max_seats": 50,
            "booked_seats": 12,
        }


class TestCapacityService:

    @pytest.mark.asyncio
    async def test_only_approved_registrations_take_seats(self, capacity_service, make_event, make_registration):
        event = make_event(max_seats=5)
        make_registration(event.id, 1, RegistrationStatus.APPROVED)
        make_registration(event.id, 2, RegistrationStatus.APPROVED)
        make_registration(event.id, 3, RegistrationStatus.PENDING)
        make_registration(event.id, 4, RegistrationStatus.REJECTED)
        make_registration(event.id, 5, RegistrationStatus.CANCELLED)

        availability = await capacity_service.get_available_seats(event.id)

        assert availability.booked_seats == 2
        assert availability.available_seats == 3
        assert availability.max_seats == 5

    @pytest.mark.asyncio
    async def test_recomputed_after_cancellation(
        self, capacity_service, registration_service, make_event, make_registration
    ):
        event = make_event(max_seats=1)
        registration = make_registration(event.id, 1, RegistrationStatus.APPROVED)
        assert (await capacity_service.get_available_seats(event.id)).available_seats == 0

        await registration_service.cancel(registration.id, 1)

        assert (await capacity_service.get_available_seats(event.id)).available_seats == 1

    @pytest.mark.asyncio
    async def test_missing_event(self, capacity_service):
        with pytest.raises(NotFoundError):
            await capacity_service.get_available_seats(404)
