"""
Ticketing models for Seatbook.
Events own the seat counter; tickets hold seats.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Enum, Numeric,
    ForeignKey, Index, CheckConstraint, Text, text
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from enum import Enum as PyEnum

Base = declarative_base()

ACTIVE_SEAT_INDEX = "uq_tickets_active_seat"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class EventStatus(str, PyEnum):
    """Event status enumeration."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    CLOSED = "closed"


class TicketStatus(str, PyEnum):
    """Ticket status enumeration."""
    BOOKED = "booked"         # Holds a seat
    USED = "used"             # Scanned at entry, still holds the seat
    CANCELLED = "cancelled"   # Seat released


ACTIVE_TICKET_STATUSES = (TicketStatus.BOOKED, TicketStatus.USED)


class Event(Base):
    """
    Event with a fixed capacity and a stored availability counter.
    available_seats is written only by booking, cancellation and reconciliation.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    venue = Column(String(300), nullable=False)
    event_date = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # Capacity tracking
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    status = Column(
        Enum(EventStatus, values_callable=_enum_values, name="event_status"),
        default=EventStatus.UPCOMING,
        nullable=False,
        index=True
    )
    created_by = Column(Integer, nullable=False, index=True)  # References identity provider

    # Metadata
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    tickets = relationship("Ticket", back_populates="event", passive_deletes=True)

    __table_args__ = (
        CheckConstraint('total_seats > 0', name='check_total_seats_positive'),
        CheckConstraint('available_seats >= 0', name='check_available_seats_non_negative'),
        CheckConstraint('available_seats <= total_seats', name='check_available_seats_within_capacity'),
        CheckConstraint('price >= 0', name='check_event_price_non_negative'),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, available={self.available_seats}/{self.total_seats})>"

    def to_dict(self) -> dict:
        """Convert event to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "venue": self.venue,
            "event_date": self.event_date.isoformat() if self.event_date else None,
            "price": float(self.price) if self.price is not None else None,
            "total_seats": self.total_seats,
            "available_seats": self.available_seats,
            "status": self.status.value if self.status else None,
            "created_by": self.created_by,
            "version": self.version,
        }

    @property
    def is_sold_out(self) -> bool:
        """Check if the event has no remaining capacity."""
        return self.available_seats <= 0

    @property
    def booked_seats_count(self) -> int:
        """Seats taken according to the stored counter."""
        return self.total_seats - self.available_seats


class Ticket(Base):
    """
    A seat held by a user for an event.
    The seat assignment never changes; only status transitions.
    """

    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)  # References identity provider

    seat_number = Column(String(10), nullable=False)
    status = Column(
        Enum(TicketStatus, values_callable=_enum_values, name="ticket_status"),
        default=TicketStatus.BOOKED,
        nullable=False,
        index=True
    )
    price = Column(Numeric(10, 2), nullable=False)

    ticket_number = Column(String(50), unique=True, nullable=False)
    qr_code = Column(String(128), unique=True, nullable=False)

    # Timing
    booking_date = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    event = relationship("Event", back_populates="tickets")

    __table_args__ = (
        CheckConstraint('price > 0', name='check_ticket_price_positive'),
        Index(
            ACTIVE_SEAT_INDEX,
            'event_id', 'seat_number',
            unique=True,
            postgresql_where=text("status IN ('booked', 'used')"),
            sqlite_where=text("status IN ('booked', 'used')"),
        ),
        Index('idx_ticket_event_status', 'event_id', 'status'),
        Index('idx_ticket_user_booking_date', 'user_id', 'booking_date'),
    )

    def __repr__(self):
        status = self.status.value if self.status else None
        return f"<Ticket(id={self.id}, event_id={self.event_id}, seat='{self.seat_number}', status='{status}')>"

    def to_dict(self) -> dict:
        """Convert ticket to dictionary representation."""
        return {
            "id": self.id,
            "event_id": self.event_id,
            "user_id": self.user_id,
            "seat_number": self.seat_number,
            "status": self.status.value if self.status else None,
            "price": float(self.price) if self.price is not None else None,
            "ticket_number": self.ticket_number,
            "qr_code": self.qr_code,
            "booking_date": self.booking_date.isoformat() if self.booking_date else None,
            "used_at": self.used_at.isoformat() if self.used_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }

    @property
    def is_active(self) -> bool:
        """Check if the ticket currently occupies its seat."""
        return self.status in ACTIVE_TICKET_STATUSES
