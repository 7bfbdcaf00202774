"""
Tests for request and response schemas.
"""

import pytest
from pydantic import ValidationError

from app.schemas.notification import BulkNotificationRequest
from app.schemas.registration import AttendanceMark, RegistrationCreate, SeatAvailabilityResponse


class TestRequestSchemas:

    def test_registration_requires_positive_event(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(event_id=0)

    def test_attendance_defaults(self):
        mark = AttendanceMark(event_id=1, participant_id=2)

        assert mark.attended is True
        assert mark.check_in_method == "manual"

    def test_attendance_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            AttendanceMark(event_id=1, participant_id=2, check_in_method="nfc")

    def test_bulk_dedupes_recipients(self):
        request = BulkNotificationRequest(recipient_ids=[3, 1, 3, 2, 1], title="Hi", message="Hello")

        assert request.recipient_ids == [3, 1, 2]

    def test_bulk_rejects_non_positive_recipient(self):
        with pytest.raises(ValidationError):
            BulkNotificationRequest(recipient_ids=[1, 0], title="Hi", message="Hello")

    def test_bulk_requires_title(self):
        with pytest.raises(ValidationError):
            BulkNotificationRequest(recipient_ids=[1], title="", message="Hello")


class TestSeatAvailabilityResponse:

    def test_serializes_camel_case(self):
        response = SeatAvailabilityResponse(event_id=4, available_seats=1, max_seats=3, booked_seats=2)

        assert response.model_dump(by_alias=True) == {
            "eventId": 4,
            "availableSeats": 1,
            "maxSeats": 3,
            "bookedSeats": 2,
        }

    def test_rejects_negative_availability(self):
        with pytest.raises(ValidationError):
            SeatAvailabilityResponse(event_id=4, available_seats=-1, max_seats=3, booked_seats=4)
