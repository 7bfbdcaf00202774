"""
Domain errors for Registrations Service.
Every expected outcome carries a specific code so callers can react to it.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    EVENT_NOT_OPEN = "EVENT_NOT_OPEN"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INVALID_EVENT_SCHEDULE = "INVALID_EVENT_SCHEDULE"
    INVALID_INPUT = "INVALID_INPUT"
    LOCK_UNAVAILABLE = "LOCK_UNAVAILABLE"
    INTERNAL = "INTERNAL_SERVER_ERROR"


class DomainError(Exception):
    """Base domain error with code, user-safe message and HTTP status."""

    code = ErrorCode.INTERNAL
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Raised when an event, registration, notification or certificate is missing."""

    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[int] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class ForbiddenError(DomainError):
    """Raised when the actor lacks the role or ownership for an operation."""

    code = ErrorCode.FORBIDDEN
    status_code = 403


class DuplicateRegistrationError(DomainError):
    """Raised when a participant already holds a registration for the event."""

    code = ErrorCode.DUPLICATE_REGISTRATION
    status_code = 409

    def __init__(self, event_id: int, participant_id: int):
        super().__init__("Already registered for this event")
        self.event_id = event_id
        self.participant_id = participant_id


class EventNotOpenError(DomainError):
    """Raised when registering for a cancelled or completed event."""

    code = ErrorCode.EVENT_NOT_OPEN
    status_code = 400

    def __init__(self, event_id: int, event_status: str):
        super().__init__("Event not open")
        self.event_id = event_id
        self.event_status = event_status


class CapacityExceededError(DomainError):
    """Raised when an approval would push approved registrations past max seats."""

    code = ErrorCode.CAPACITY_EXCEEDED
    status_code = 409

    def __init__(self, event_id: int):
        super().__init__("No seats available")
        self.event_id = event_id


class InvalidEventScheduleError(DomainError):
    """Raised when an event's date/time cannot be turned into a ticket."""

    code = ErrorCode.INVALID_EVENT_SCHEDULE
    status_code = 422

    def __init__(self, message: str = "Invalid event date or time"):
        super().__init__(message)


class InvalidInputError(DomainError):
    """Raised for malformed request payloads or illegal state requests."""

    code = ErrorCode.INVALID_INPUT
    status_code = 400


class LockUnavailableError(DomainError):
    """Raised when another instance holds the approval lock for the event past the wait limit."""

    code = ErrorCode.LOCK_UNAVAILABLE
    status_code = 503

    def __init__(self, lock_key: str):
        super().__init__("Another approval is in progress for this event, please retry")
        self.lock_key = lock_key


class InternalError(DomainError):
    """Opaque failure wrapping an unexpected storage or runtime error."""

    code = ErrorCode.INTERNAL
    status_code = 500

    def __init__(self, message: str = "An internal server error occurred"):
        super().__init__(message)
