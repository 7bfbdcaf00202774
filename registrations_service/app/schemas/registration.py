"""
Pydantic schemas for Registrations Service.
Handles request/response validation for registrations, seats, attendance
and certificates.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime, date as date_type

from app.models.registration import RegistrationStatus, CertificateStatus


# Base schemas
class ORMSchema(BaseModel):
    """Base schema read from ORM objects."""

    class Config:
        from_attributes = True


# Request schemas
class RegistrationCreate(BaseModel):
    """Schema for registering for an event."""

    event_id: int = Field(..., gt=0, description="ID of the event to register for")


class AttendanceMark(BaseModel):
    """Schema for marking attendance."""

    event_id: int = Field(..., gt=0, description="Event ID")
    participant_id: int = Field(..., gt=0, description="Participant user ID")
    attended: bool = Field(True, description="Whether the participant attended")
    check_in_method: str = Field("manual", description="How attendance was taken")

    @field_validator('check_in_method')
    @classmethod
    def validate_check_in_method(cls, v):
        if v not in ("manual", "qr"):
            raise ValueError('Check-in method must be "manual" or "qr"')
        return v


class CertificateRequest(BaseModel):
    """Schema for requesting a certificate."""

    event_id: int = Field(..., gt=0, description="Event ID")


class CertificateIssue(BaseModel):
    """Schema for issuing a certificate."""

    event_id: int = Field(..., gt=0, description="Event ID")
    participant_id: int = Field(..., gt=0, description="Participant user ID")
    certificate_url: str = Field(..., min_length=1, max_length=500, description="Where the certificate can be downloaded")
    fee_paid: bool = Field(False, description="Whether the certificate fee was paid")


# Response schemas
class EventSummaryResponse(ORMSchema):
    """Event details embedded in registration responses."""

    id: int
    title: str
    date: date_type
    time: str
    venue: str
    max_seats: int
    organizer_id: int


class RegistrationResponse(ORMSchema):
    """Schema for registration response."""

    id: int
    event_id: int
    participant_id: int
    status: RegistrationStatus
    registered_on: datetime
    decided_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    event: Optional[EventSummaryResponse] = None


class RegistrationCounts(BaseModel):
    """Approved and pending registrations for an event."""

    approved: int = Field(..., ge=0)
    pending: int = Field(..., ge=0)


class RegistrationWithCountsResponse(BaseModel):
    """Schema for register and cancel responses."""

    success: bool = Field(True, description="Operation success status")
    message: str = Field(..., description="Success message")
    registration: RegistrationResponse
    counts: RegistrationCounts


class RegistrationActionResponse(BaseModel):
    """Schema for approve and reject responses."""

    success: bool = Field(True, description="Operation success status")
    message: str = Field(..., description="Success message")
    registration: RegistrationResponse


class SeatAvailabilityResponse(BaseModel):
    """Schema for seat availability."""

    event_id: int = Field(..., serialization_alias="eventId")
    available_seats: int = Field(..., ge=0, serialization_alias="availableSeats")
    max_seats: int = Field(..., serialization_alias="maxSeats")
    booked_seats: int = Field(..., ge=0, serialization_alias="bookedSeats")


class AttendanceResponse(ORMSchema):
    """Schema for attendance response."""

    id: int
    event_id: int
    participant_id: int
    attended: bool
    check_in_method: str
    marked_on: datetime
    marked_by: Optional[int] = None


class CertificateResponse(ORMSchema):
    """Schema for certificate response."""

    id: int
    event_id: int
    participant_id: int
    status: CertificateStatus
    certificate_url: Optional[str] = None
    fee_paid: bool
    issued_on: Optional[datetime] = None
    created_at: datetime


class AttendedEventResponse(ORMSchema):
    """Event a participant attended."""

    id: int
    title: str
    date: date_type
    venue: str


# Error schemas
class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error_code: str = Field(..., description="Error code")
    error_message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


# Health check schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=datetime.now, description="Health check timestamp")
    version: str = Field(..., description="Service version")
    database: str = Field(..., description="Database connection status")
    redis: str = Field(..., description="Redis connection status")
