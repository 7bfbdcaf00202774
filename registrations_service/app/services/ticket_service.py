"""
Ticket Service for Registrations Service.
Builds the iCalendar ticket attached to an approved registration.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Union
import logging

from app.core.errors import InvalidEventScheduleError

logger = logging.getLogger(__name__)

CRLF = "\r\n"
ICS_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

_ICS_ESCAPES = {"\\": "\\\\", ",": "\\,", ";": "\\;", "\n": "\\n"}
_ICS_RESERVED = re.compile(r"[\\,;\n]")


def escape_ics_text(value: Optional[str]) -> str:
    """Escape backslash, comma, semicolon and newline for an iCalendar text value."""
    if value is None:
        return ""
    return _ICS_RESERVED.sub(lambda m: _ICS_ESCAPES[m.group(0)], str(value))


def format_ics_timestamp(value: datetime) -> str:
    """
    Format a timestamp in basic UTC form.
    Naive datetimes are taken as already being UTC.
    """
    return value.strftime(ICS_TIMESTAMP_FORMAT)


def parse_clock_time(value: str) -> tuple:
    """
    Parse a free-text clock string such as "10:00 AM", "2:30 pm" or "22:00".

    Returns:
        (hour, minute) in 24-hour form

    Raises:
        InvalidEventScheduleError: If the string is not a valid clock time
    """
    if not value or not isinstance(value, str):
        raise InvalidEventScheduleError("Event time is missing")

    parts = value.strip().split()
    if not parts or len(parts) > 2:
        raise InvalidEventScheduleError(f"Unrecognised event time: {value!r}")

    clock = parts[0].split(":")
    if len(clock) != 2:
        raise InvalidEventScheduleError(f"Unrecognised event time: {value!r}")

    try:
        hours = int(clock[0])
        minutes = int(clock[1])
    except ValueError:
        raise InvalidEventScheduleError(f"Unrecognised event time: {value!r}")

    hour24 = hours
    if len(parts) == 2:
        period = parts[1].upper()
        if period == "PM" and hours != 12:
            hour24 = hours + 12
        elif period == "AM" and hours == 12:
            hour24 = 0
        elif period not in ("AM", "PM"):
            raise InvalidEventScheduleError(f"Unrecognised AM/PM marker in {value!r}")

    if not 0 <= hour24 <= 23 or not 0 <= minutes <= 59:
        raise InvalidEventScheduleError(f"Event time out of range: {value!r}")

    return hour24, minutes


def combine_date_time(event_date: Union[date, datetime, str, None], clock: str) -> datetime:
    """
    Combine an event's calendar date with its clock-time string.
    The result is a naive datetime mapped directly onto UTC.

    Raises:
        InvalidEventScheduleError: If either the date or the time is invalid
    """
    if isinstance(event_date, datetime):
        base = event_date.date()
    elif isinstance(event_date, date):
        base = event_date
    elif isinstance(event_date, str):
        try:
            base = date.fromisoformat(event_date[:10])
        except ValueError:
            raise InvalidEventScheduleError(f"Invalid event date: {event_date!r}")
    else:
        raise InvalidEventScheduleError("Event date is missing")

    hour, minute = parse_clock_time(clock)
    return datetime(base.year, base.month, base.day, hour, minute)


def build_ics(
    title: str,
    description: Optional[str],
    location: Optional[str],
    start: datetime,
    end: Optional[datetime] = None,
    url: Optional[str] = None
) -> str:
    """
    Build the calendar ticket text. Lines are CRLF separated and the URL
    line is omitted entirely when no URL is given.
    """
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//EventSphere//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"DTSTART:{format_ics_timestamp(start)}",
        f"DTEND:{format_ics_timestamp(end or start)}",
        f"SUMMARY:{escape_ics_text(title)}",
        f"DESCRIPTION:{escape_ics_text(description)}",
        f"LOCATION:{escape_ics_text(location)}",
    ]
    if url:
        lines.append(f"URL:{url}")
    lines.extend(["END:VEVENT", "END:VCALENDAR"])
    return CRLF.join(lines)


def ticket_filename(title: str) -> str:
    """Download filename derived from the event title."""
    return f"{re.sub(r'[^a-z0-9]', '_', title, flags=re.IGNORECASE).lower()}_ticket.ics"


class TicketService:
    """
    Issues calendar tickets for events.
    """

    def __init__(self, frontend_url: str = "http://localhost:3000", duration_minutes: int = 60):
        self.frontend_url = frontend_url.rstrip("/")
        self.duration = timedelta(minutes=duration_minutes)

    def event_url(self, event_id: int) -> str:
        return f"{self.frontend_url}/events/{event_id}"

    def issue_for_event(self, event, end: Optional[datetime] = None) -> str:
        """
        Build the ticket for an event record.

        Args:
            event: Event with title, description, venue, date and time
            end: Explicit end; defaults to start plus the configured duration

        Raises:
            InvalidEventScheduleError: If the event's date or time cannot be parsed
        """
        start = combine_date_time(event.date, event.time)
        if end is None:
            end = start + self.duration

        ticket = build_ics(
            title=event.title,
            description=event.description,
            location=event.venue,
            start=start,
            end=end,
            url=self.event_url(event.id)
        )
        logger.debug(f"Ticket built for event {event.id}")
        return ticket
