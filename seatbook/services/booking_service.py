"""
Booking Service for Seatbook.
Turns a seat selection into a uniquely owned ticket and keeps the event
seat counter in step, compensating when a later step fails.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from seatbook.core.config import config
from seatbook.core.exceptions import (
    BookingValidationError, EventNotFound, TicketNotFound, TicketStateError,
    SeatAlreadyBooked, SoldOut, BookingFailed, InconsistentState
)
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.models.ticketing import Event, Ticket, TicketStatus, ACTIVE_TICKET_STATUSES, ACTIVE_SEAT_INDEX
from seatbook.utils.qr_code import generate_qr_signature
from .availability_service import availability_service
from .event_publisher import TicketEventPublisher
from .event_service import event_service
from .seat_map import SeatMap

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    """A created ticket and the event counter right after the booking."""

    ticket: Ticket
    available_seats: int


class BookingService:
    """
    Seat booking with storage-enforced uniqueness.

    The seat and capacity pre-checks only short-circuit obvious failures.
    Double booking is prevented by the partial unique index on active seats,
    and overselling by the conditional counter decrement.
    """

    def __init__(self):
        self.consistency_config = None
        self.booking_config = None
        self.qr_secret = None
        self.seat_map = None
        self.event_publisher = None

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.consistency_config:
            self.consistency_config = await config.get_consistency_config()
        if not self.booking_config:
            self.booking_config = await config.get_booking_config()
        if not self.qr_secret:
            self.qr_secret = await config.get_qr_secret()
        if not self.seat_map:
            seat_map_config = await config.get_seat_map_config()
            self.seat_map = SeatMap(seat_map_config["rows"], seat_map_config["seats_per_row"])

    async def _get_event_publisher(self) -> TicketEventPublisher:
        """Get event publisher instance."""
        if not self.event_publisher:
            refresh_config = await config.get_refresh_config()
            self.event_publisher = TicketEventPublisher(redis_manager, refresh_config["channel_prefix"])
        return self.event_publisher

    async def _generate_ticket_number(self) -> str:
        """Generate unique ticket number."""
        prefix = self.booking_config["ticket_number_prefix"]
        return f"{prefix}-{datetime.now(timezone.utc).strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"

    @staticmethod
    def _validate_request(user_id: Optional[int], seat_number: Optional[str], price) -> Tuple[str, Decimal]:
        if user_id is None:
            raise BookingValidationError("User must be authenticated to book tickets")

        seat_number = (seat_number or "").strip()
        if not seat_number:
            raise BookingValidationError("Seat number is required")

        try:
            price = Decimal(str(price))
        except (InvalidOperation, TypeError, ValueError):
            raise BookingValidationError("Invalid ticket price", {"price": str(price)})
        if price <= 0:
            raise BookingValidationError("Ticket price must be greater than zero", {"price": str(price)})

        return seat_number, price

    async def book_ticket(self, event_id: int, user_id: int, seat_number: str, price) -> BookingResult:
        """
        Book a seat for a user.

        Args:
            event_id: ID of the event
            user_id: ID of the booking user
            seat_number: Seat identifier, e.g. A1
            price: Price charged for the ticket

        Returns:
            BookingResult with the ticket and the updated available_seats

        Raises:
            BookingValidationError: Invalid request
            EventNotFound: Event does not exist
            SeatAlreadyBooked: Seat is held by an active ticket
            SoldOut: No capacity left
            BookingFailed: A step after the ticket insert failed; compensation applied
            InconsistentState: Compensation failed; reconciliation required
        """
        await self._get_configs()
        seat_number, price = self._validate_request(user_id, seat_number, price)
        if not self.seat_map.contains(seat_number):
            raise BookingValidationError(
                f"Seat {seat_number} is not on the seat map",
                {"seat_number": seat_number, "rows": self.seat_map.rows, "seats_per_row": self.seat_map.seats_per_row}
            )

        # Pre-checks, no mutation
        if await self._is_seat_taken(event_id, seat_number):
            logger.info(f"Seat {seat_number} for event {event_id} already booked")
            raise SeatAlreadyBooked(event_id, seat_number)

        available = await self._fetch_event_capacity(event_id)
        if available <= 0:
            logger.info(f"Event {event_id} is sold out")
            raise SoldOut(event_id)

        # First durable mutation
        ticket = await self._insert_ticket(event_id, user_id, seat_number, price)

        available_seats = await self._decrement_and_verify(ticket)

        logger.info(
            f"Ticket {ticket.ticket_number} booked for user {user_id}: "
            f"event {event_id} seat {seat_number}, {available_seats} seats left"
        )

        await self._after_change(event_id)
        try:
            publisher = await self._get_event_publisher()
            await publisher.publish_ticket_booked(ticket, available_seats)
        except Exception as e:
            logger.error(f"Failed to publish booking of ticket {ticket.id}: {e}")

        return BookingResult(ticket=ticket, available_seats=available_seats)

    async def _is_seat_taken(self, event_id: int, seat_number: str) -> bool:
        """Check for an active ticket on the seat."""
        with db_manager.get_session() as session:
            existing = session.query(Ticket.id).filter(
                Ticket.event_id == event_id,
                Ticket.seat_number == seat_number,
                Ticket.status.in_(ACTIVE_TICKET_STATUSES)
            ).first()
        return existing is not None

    async def _fetch_event_capacity(self, event_id: int) -> int:
        """Read the event counter, raising if the event is missing."""
        with db_manager.get_session() as session:
            row = session.query(Event.available_seats).filter(Event.id == event_id).first()
        if row is None:
            raise EventNotFound(event_id)
        return row[0]

    async def _insert_ticket(self, event_id: int, user_id: int, seat_number: str, price: Decimal) -> Ticket:
        """
        Insert the ticket in its own transaction.
        A ticket number collision is retried; an active seat collision is final.
        """
        max_attempts = max(1, self.consistency_config["max_retry_attempts"])

        for attempt in range(1, max_attempts + 1):
            ticket_number = await self._generate_ticket_number()
            ticket = Ticket(
                event_id=event_id,
                user_id=user_id,
                seat_number=seat_number,
                status=TicketStatus.BOOKED,
                price=price,
                ticket_number=ticket_number,
                qr_code=generate_qr_signature(ticket_number, self.qr_secret),
                booking_date=datetime.now(timezone.utc)
            )
            try:
                with db_manager.get_session() as session:
                    session.add(ticket)
                    session.flush()
                    session.refresh(ticket)
                return ticket

            except IntegrityError as e:
                message = str(e.orig) if e.orig is not None else str(e)
                if ACTIVE_SEAT_INDEX in message or "seat_number" in message:
                    logger.info(f"Seat {seat_number} for event {event_id} taken by a concurrent booking")
                    raise SeatAlreadyBooked(event_id, seat_number) from e
                if "ticket_number" in message or "qr_code" in message:
                    logger.warning(f"Ticket number collision on attempt {attempt}/{max_attempts}, retrying")
                    continue
                raise BookingFailed("Failed to create ticket", cause=e, details={"event_id": event_id}) from e

            except SQLAlchemyError as e:
                raise BookingFailed("Failed to create ticket", cause=e, details={"event_id": event_id}) from e

        raise BookingFailed(
            "Could not generate a unique ticket number",
            details={"event_id": event_id, "attempts": max_attempts}
        )

    async def _decrement_and_verify(self, ticket: Ticket) -> int:
        """
        Take one seat from the event counter and confirm it.

        Returns:
            available_seats after the decrement
        """
        event_id = ticket.event_id

        try:
            with db_manager.get_session() as session:
                updated = await event_service.decrement_available_seats(session, event_id)
        except Exception as e:
            await self._compensate(ticket, restore_counter=False)
            raise BookingFailed("Failed to update event seat count", cause=e, details={"event_id": event_id}) from e

        try:
            with db_manager.get_session() as session:
                row = session.query(Event.available_seats).filter(Event.id == event_id).first()
        except Exception as e:
            await self._compensate(ticket, restore_counter=bool(updated))
            raise BookingFailed("Failed to verify event seat count", cause=e, details={"event_id": event_id}) from e

        if updated:
            if row is None:
                await self._compensate(ticket, restore_counter=False)
                raise BookingFailed("Event disappeared during booking", details={"event_id": event_id})
            return row[0]

        # Conditional update matched nothing
        if row is not None and row[0] <= 0:
            logger.info(f"Lost the race for the last seat of event {event_id}")
            await self._compensate(ticket, restore_counter=False)
            raise SoldOut(event_id)

        await self._compensate(ticket, restore_counter=False)
        raise BookingFailed("Could not confirm event seat count update", details={"event_id": event_id})

    async def _compensate(self, ticket: Ticket, restore_counter: bool):
        """
        Undo a partial booking: delete the ticket and, if the counter was
        already decremented, give the seat back. One transaction.
        """
        logger.warning(
            f"Compensating booking of ticket {ticket.id} for event {ticket.event_id} "
            f"(restore_counter={restore_counter})"
        )
        try:
            with db_manager.get_session() as session:
                await self._delete_ticket(session, ticket.id)
                if restore_counter:
                    await event_service.increment_available_seats(session, ticket.event_id)
        except Exception as e:
            logger.critical(
                f"Compensation failed for ticket {ticket.id} ({ticket.ticket_number}) of event {ticket.event_id}: {e}. "
                f"Seat counter requires reconciliation"
            )
            raise InconsistentState(ticket.id, ticket.event_id, cause=e) from e

    async def _delete_ticket(self, session, ticket_id: int) -> int:
        return session.query(Ticket).filter(Ticket.id == ticket_id).delete(synchronize_session=False)

    async def _after_change(self, event_id: int):
        try:
            await availability_service.invalidate_booked_seats(event_id)
        except Exception as e:
            logger.error(f"Failed to invalidate booked seats cache for event {event_id}: {e}")

    async def cancel_ticket(self, ticket_id: int, user_id: Optional[int] = None, is_admin: bool = False) -> Tuple[Ticket, int]:
        """
        Cancel a booked ticket and give its seat back.

        Args:
            ticket_id: ID of the ticket
            user_id: ID of the requesting user (ownership check)
            is_admin: Whether the caller may cancel any ticket

        Returns:
            Tuple of (cancelled ticket, event available_seats)

        Raises:
            TicketNotFound: Ticket missing or owned by someone else
            TicketStateError: Ticket is not in booked status
        """
        with db_manager.get_session() as session:
            ticket = session.query(Ticket).filter(Ticket.id == ticket_id).first()

            if not ticket or (not is_admin and ticket.user_id != user_id):
                raise TicketNotFound(f"Ticket {ticket_id} not found", {"ticket_id": ticket_id})

            if ticket.status != TicketStatus.BOOKED:
                raise TicketStateError(
                    f"Ticket with status '{ticket.status.value}' cannot be cancelled",
                    {"ticket_id": ticket_id, "status": ticket.status.value}
                )

            updated = session.query(Ticket).filter(
                Ticket.id == ticket_id,
                Ticket.status == TicketStatus.BOOKED
            ).update({
                Ticket.status: TicketStatus.CANCELLED,
                Ticket.cancelled_at: datetime.now(timezone.utc)
            }, synchronize_session=False)

            if not updated:
                raise TicketStateError(
                    f"Ticket {ticket_id} was changed concurrently",
                    {"ticket_id": ticket_id}
                )

            restored = await event_service.increment_available_seats(session, ticket.event_id)
            if not restored:
                logger.error(
                    f"Seat counter of event {ticket.event_id} already at capacity while cancelling ticket {ticket_id}"
                )

            session.refresh(ticket)
            available_seats = session.query(Event.available_seats).filter(
                Event.id == ticket.event_id
            ).scalar()

        logger.info(f"Ticket {ticket.ticket_number} cancelled, event {ticket.event_id} has {available_seats} seats left")

        await self._after_change(ticket.event_id)
        try:
            publisher = await self._get_event_publisher()
            await publisher.publish_ticket_cancelled(ticket, available_seats)
        except Exception as e:
            logger.error(f"Failed to publish cancellation of ticket {ticket_id}: {e}")

        return ticket, available_seats


# Global service instance
booking_service = BookingService()
