"""
Pydantic schemas for Seatbook.
Handles request/response validation and serialization.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from seatbook.services.seat_map import SEAT_ID_PATTERN


class EventStatusEnum(str, Enum):
    """Event status enumeration for API."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    CLOSED = "closed"


class TicketStatusEnum(str, Enum):
    """Ticket status enumeration for API."""
    BOOKED = "booked"
    USED = "used"
    CANCELLED = "cancelled"


def _validate_future_date(v: datetime) -> datetime:
    if v.tzinfo is None:
        v = v.replace(tzinfo=timezone.utc)
    if v < datetime.now(timezone.utc):
        raise ValueError('Event date must be in the future')
    return v


def _validate_price(v: Decimal) -> Decimal:
    if v.as_tuple().exponent < -2:
        raise ValueError('Price cannot have more than 2 decimal places')
    return v


# Request schemas
class EventCreate(BaseModel):
    """Schema for creating an event. available_seats starts at total_seats."""

    title: str = Field(..., min_length=3, max_length=200, description="Event title")
    description: Optional[str] = Field(None, max_length=5000)
    venue: str = Field(..., min_length=1, max_length=300)
    event_date: datetime
    price: Decimal = Field(..., ge=0, description="Ticket price")
    total_seats: int = Field(..., ge=1, description="Fixed capacity")
    status: EventStatusEnum = EventStatusEnum.UPCOMING

    @field_validator('title', 'venue')
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be blank')
        return v.strip()

    @field_validator('event_date')
    @classmethod
    def validate_event_date(cls, v):
        return _validate_future_date(v)

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        return _validate_price(v)


class EventUpdate(BaseModel):
    """Schema for editing event details. Seat counters are not editable."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    venue: Optional[str] = Field(None, min_length=1, max_length=300)
    event_date: Optional[datetime] = None
    price: Optional[Decimal] = Field(None, ge=0)
    status: Optional[EventStatusEnum] = None

    @field_validator('event_date')
    @classmethod
    def validate_event_date(cls, v):
        if v is None:
            return v
        return _validate_future_date(v)

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        if v is None:
            return v
        return _validate_price(v)


class TicketBookRequest(BaseModel):
    """Schema for booking a seat."""

    event_id: int = Field(..., gt=0, description="ID of the event to book")
    seat_number: str = Field(..., min_length=2, max_length=10, description="Seat identifier, e.g. A1")

    @field_validator('seat_number')
    @classmethod
    def validate_seat_number(cls, v):
        v = v.strip().upper()
        if not SEAT_ID_PATTERN.match(v):
            raise ValueError('Seat number must be a row letter followed by a seat number')
        return v


class TicketVerifyRequest(BaseModel):
    """Schema for looking up a ticket by its verification code."""

    qr_code: str = Field(..., min_length=8, max_length=128)


# Response schemas
class EventResponse(BaseModel):
    """Schema for event response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    venue: str
    event_date: datetime
    price: float
    total_seats: int
    available_seats: int
    status: EventStatusEnum
    created_by: int


class TicketResponse(BaseModel):
    """Schema for ticket response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_id: int
    seat_number: str
    status: TicketStatusEnum
    price: float
    ticket_number: str
    qr_code: str
    booking_date: datetime
    used_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class TicketWithEventResponse(TicketResponse):
    """Ticket together with the event it admits to."""

    event: Optional[EventResponse] = None


class BookingResponse(BaseModel):
    """Schema for a successful booking."""

    success: bool = True
    message: str = "Ticket booked successfully"
    ticket: TicketResponse
    available_seats: int = Field(..., ge=0, description="Event seats left after this booking")


class CancellationResponse(BaseModel):
    """Schema for a cancelled ticket."""

    success: bool = True
    message: str = "Ticket cancelled successfully"
    ticket: TicketResponse
    available_seats: int = Field(..., ge=0)


class BookedSeatsResponse(BaseModel):
    """Schema for the booked seats of an event."""

    event_id: int
    booked_seats: List[str]
    available_seats: int
    total_seats: int


class SeatResponse(BaseModel):
    seat_id: str
    state: str


class SeatRowResponse(BaseModel):
    row: str
    seats: List[SeatResponse]


class SeatMapResponse(BaseModel):
    """Schema for the rendered seat grid of an event."""

    event_id: int
    rows: int
    seats_per_row: int
    available_seats: int
    total_seats: int
    grid: List[SeatRowResponse]


class ReconciliationResponse(BaseModel):
    """Schema for a seat counter reconciliation result."""

    event_id: int
    total_seats: int
    active_tickets: int
    previous_available_seats: int
    available_seats: int
    corrected: bool


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error_code: str = Field(..., description="Error code")
    error_message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=datetime.now, description="Health check timestamp")
    version: str = Field(..., description="Service version")
    database: str = Field(..., description="Database connection status")
    redis: str = Field(..., description="Redis connection status")
