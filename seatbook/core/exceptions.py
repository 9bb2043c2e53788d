"""
Error taxonomy for the seat-booking protocol.
Each error carries a stable error code and a human-readable message.
"""

from typing import Optional, Dict, Any


class BookingError(Exception):
    """Base class for booking protocol errors."""

    error_code = "BOOKING_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class BookingValidationError(BookingError):
    """Raised when a booking request violates its preconditions."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class EventNotFound(BookingError):
    """Raised when the referenced event does not exist."""

    error_code = "EVENT_NOT_FOUND"
    status_code = 404

    def __init__(self, event_id: int):
        super().__init__(f"Event {event_id} not found", {"event_id": event_id})
        self.event_id = event_id


class TicketNotFound(BookingError):
    """Raised when a ticket does not exist or is not visible to the caller."""

    error_code = "TICKET_NOT_FOUND"
    status_code = 404


class TicketStateError(BookingError):
    """Raised on a status transition the ticket cannot make."""

    error_code = "INVALID_TICKET_STATE"
    status_code = 409


class SeatAlreadyBooked(BookingError):
    """The seat is held by an active ticket. Pick another seat."""

    error_code = "SEAT_ALREADY_BOOKED"
    status_code = 409

    def __init__(self, event_id: int, seat_number: str):
        super().__init__(
            f"Seat {seat_number} has already been booked",
            {"event_id": event_id, "seat_number": seat_number}
        )
        self.event_id = event_id
        self.seat_number = seat_number


class SoldOut(BookingError):
    """The event has no remaining capacity."""

    error_code = "SOLD_OUT"
    status_code = 409

    def __init__(self, event_id: int):
        super().__init__("No seats available for this event", {"event_id": event_id})
        self.event_id = event_id


class BookingFailed(BookingError):
    """A step after the pre-checks failed; compensation was applied."""

    error_code = "BOOKING_FAILED"
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if cause is not None:
            details.setdefault("cause", str(cause))
        super().__init__(message, details)
        self.cause = cause


class InconsistentState(BookingError):
    """
    Compensation failed: an active ticket exists that the seat counter
    does not reflect. Requires reconciliation.
    """

    error_code = "INCONSISTENT_STATE"
    status_code = 500

    def __init__(self, ticket_id: int, event_id: int, cause: Optional[BaseException] = None):
        super().__init__(
            f"Ticket {ticket_id} for event {event_id} is orphaned and requires reconciliation",
            {"ticket_id": ticket_id, "event_id": event_id, "cause": str(cause) if cause else None}
        )
        self.ticket_id = ticket_id
        self.event_id = event_id
        self.cause = cause
