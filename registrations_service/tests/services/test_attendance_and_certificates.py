"""
Tests for attendance marking and certificate issuance.
"""

import pytest
from unittest.mock import patch

from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.models.registration import RegistrationStatus, CertificateStatus
from app.services.attendance_service import AttendanceService
from app.services.certificate_service import CertificateService
from conftest import ADMIN_ID, ORGANIZER_ID


def stale_first_lookup(service_class):
    """Make the first existence check miss, as if a concurrent insert had not committed yet."""
    real_find = service_class._find
    calls = []

    def find(session, event_id, participant_id):
        calls.append(event_id)
        if len(calls) == 1:
            return None
        return real_find(session, event_id, participant_id)

    return patch.object(service_class, "_find", staticmethod(find))


@pytest.fixture
def attendance_service(db_manager):
    return AttendanceService(db_manager)


@pytest.fixture
def certificate_service(db_manager):
    return CertificateService(db_manager)


class TestAttendance:

    @pytest.mark.asyncio
    async def test_mark_attendance_upserts(self, attendance_service, make_event, make_registration):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)

        first = await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")
        second = await attendance_service.mark_attendance(
            event.id, 100, ORGANIZER_ID, "organizer", attended=False, check_in_method="qr"
        )

        assert first.id == second.id
        assert second.attended is False
        assert second.check_in_method == "qr"
        records = await attendance_service.event_attendance(event.id, ORGANIZER_ID, "organizer")
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_lost_insert_race_becomes_update(self, attendance_service, make_event, make_registration):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)
        first = await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")

        with stale_first_lookup(AttendanceService):
            second = await attendance_service.mark_attendance(
                event.id, 100, ORGANIZER_ID, "organizer", attended=False, check_in_method="qr"
            )

        assert second.id == first.id
        assert second.attended is False
        records = await attendance_service.event_attendance(event.id, ORGANIZER_ID, "organizer")
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_requires_approved_registration(self, attendance_service, make_event, make_registration):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.PENDING)

        with pytest.raises(InvalidInputError):
            await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")

    @pytest.mark.asyncio
    async def test_requires_event_manager(self, attendance_service, make_event, make_registration):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)

        with pytest.raises(ForbiddenError):
            await attendance_service.mark_attendance(event.id, 100, 100, "participant")

    @pytest.mark.asyncio
    async def test_unknown_check_in_method(self, attendance_service, make_event):
        event = make_event()

        with pytest.raises(InvalidInputError):
            await attendance_service.mark_attendance(event.id, 100, ADMIN_ID, "admin", check_in_method="nfc")

    @pytest.mark.asyncio
    async def test_missing_event(self, attendance_service):
        with pytest.raises(NotFoundError):
            await attendance_service.event_attendance(404, ADMIN_ID, "admin")


class TestCertificates:

    @pytest.mark.asyncio
    async def test_request_requires_attendance(self, certificate_service, make_event):
        event = make_event()

        with pytest.raises(InvalidInputError):
            await certificate_service.request_certificate(event.id, 100)

    @pytest.mark.asyncio
    async def test_request_is_idempotent(
        self, certificate_service, attendance_service, make_event, make_registration
    ):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)
        await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")

        first = await certificate_service.request_certificate(event.id, 100)
        second = await certificate_service.request_certificate(event.id, 100)

        assert first.id == second.id
        assert second.status == CertificateStatus.REQUESTED

    @pytest.mark.asyncio
    async def test_issue_then_request_again(
        self, certificate_service, attendance_service, make_event, make_registration
    ):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)
        await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")
        await certificate_service.request_certificate(event.id, 100)

        issued = await certificate_service.issue_certificate(
            event.id, 100, "https://certs.example/100.pdf", ORGANIZER_ID, "organizer", fee_paid=True
        )

        assert issued.status == CertificateStatus.ISSUED
        assert issued.issued_on is not None
        with pytest.raises(InvalidInputError):
            await certificate_service.request_certificate(event.id, 100)

    @pytest.mark.asyncio
    async def test_issue_requires_event_manager(self, certificate_service, make_event):
        event = make_event()

        with pytest.raises(ForbiddenError):
            await certificate_service.issue_certificate(event.id, 100, "https://certs.example/x.pdf", 55, "organizer")

    @pytest.mark.asyncio
    async def test_listings(self, certificate_service, attendance_service, make_event, make_registration):
        attended = make_event(title="Attended")
        skipped = make_event(title="Skipped")
        for event in (attended, skipped):
            make_registration(event.id, 100, RegistrationStatus.APPROVED)
        await attendance_service.mark_attendance(attended.id, 100, ORGANIZER_ID, "organizer")
        await attendance_service.mark_attendance(skipped.id, 100, ORGANIZER_ID, "organizer", attended=False)
        await certificate_service.issue_certificate(attended.id, 100, "https://certs.example/a.pdf", ADMIN_ID, "admin")

        events = await certificate_service.attended_events(100)
        certificates = await certificate_service.my_certificates(100)

        assert [e.title for e in events] == ["Attended"]
        assert [c.event_id for c in certificates] == [attended.id]

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_certificate(
        self, certificate_service, attendance_service, make_event, make_registration
    ):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)
        await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")
        first = await certificate_service.request_certificate(event.id, 100)

        with stale_first_lookup(CertificateService):
            second = await certificate_service.request_certificate(event.id, 100)

        assert second.id == first.id
        assert second.status == CertificateStatus.REQUESTED
        assert len(await certificate_service.my_certificates(100)) == 1

    @pytest.mark.asyncio
    async def test_issue_after_lost_insert_race(
        self, certificate_service, attendance_service, make_event, make_registration
    ):
        event = make_event()
        make_registration(event.id, 100, RegistrationStatus.APPROVED)
        await attendance_service.mark_attendance(event.id, 100, ORGANIZER_ID, "organizer")
        requested = await certificate_service.request_certificate(event.id, 100)

        with stale_first_lookup(CertificateService):
            issued = await certificate_service.issue_certificate(
                event.id, 100, "https://certs.example/100.pdf", ORGANIZER_ID, "organizer"
            )

        assert issued.id == requested.id
        assert issued.status == CertificateStatus.ISSUED
