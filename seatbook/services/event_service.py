"""
Event Service for Seatbook.
Owns the authoritative available_seats counter of every event.
Only the booking and cancellation paths change the counter, always through
conditional updates executed by the database.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from seatbook.core.config import config
from seatbook.core.exceptions import EventNotFound, BookingValidationError
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.models.ticketing import Event, EventStatus, Ticket, ACTIVE_TICKET_STATUSES
from seatbook.schemas.ticketing import EventCreate, EventUpdate
from .event_publisher import TicketEventPublisher

logger = logging.getLogger(__name__)


class EventService:
    """
    Event aggregate: event creation, reads and the seat counter.
    """

    def __init__(self):
        self.event_publisher = None

    async def _get_event_publisher(self) -> TicketEventPublisher:
        """Get event publisher instance."""
        if not self.event_publisher:
            refresh_config = await config.get_refresh_config()
            self.event_publisher = TicketEventPublisher(redis_manager, refresh_config["channel_prefix"])
        return self.event_publisher

    async def create_event(self, event_data: EventCreate, created_by: int) -> Event:
        """
        Create an event with every seat available.

        Args:
            event_data: Validated event fields
            created_by: ID of the organizer

        Returns:
            The persisted event
        """
        with db_manager.get_session() as session:
            event = Event(
                title=event_data.title,
                description=event_data.description,
                venue=event_data.venue,
                event_date=event_data.event_date,
                price=event_data.price,
                total_seats=event_data.total_seats,
                available_seats=event_data.total_seats,
                status=EventStatus(event_data.status.value),
                created_by=created_by,
                version=1
            )
            session.add(event)
            session.flush()
            session.refresh(event)

        logger.info(f"Event {event.id} created by user {created_by} with {event.total_seats} seats")
        return event

    async def get_event(self, event_id: int) -> Event:
        """
        Get an event by ID.

        Raises:
            EventNotFound: If the event does not exist
        """
        with db_manager.get_session() as session:
            event = session.query(Event).filter(Event.id == event_id).first()

        if not event:
            raise EventNotFound(event_id)
        return event

    async def get_available_seats(self, event_id: int) -> int:
        """Read the current counter of an event."""
        event = await self.get_event(event_id)
        return event.available_seats

    async def update_event_details(self, event_id: int, event_data: EventUpdate, user_id: Optional[int] = None, is_admin: bool = False) -> Event:
        """
        Update descriptive fields of an event.
        Capacity and counter fields are not part of EventUpdate.

        Raises:
            EventNotFound: If the event does not exist or belongs to someone else
        """
        changes = event_data.model_dump(exclude_unset=True)
        if "status" in changes and changes["status"] is not None:
            changes["status"] = EventStatus(changes["status"].value if hasattr(changes["status"], "value") else changes["status"])

        with db_manager.get_session() as session:
            query = session.query(Event).filter(Event.id == event_id)
            if not is_admin and user_id is not None:
                query = query.filter(Event.created_by == user_id)
            event = query.first()

            if not event:
                raise EventNotFound(event_id)

            for field_name, value in changes.items():
                if value is None and field_name != "description":
                    continue
                setattr(event, field_name, value)
            event.version += 1
            session.flush()
            session.refresh(event)

        try:
            publisher = await self._get_event_publisher()
            await publisher.publish_event_updated(event)
        except Exception as e:
            logger.error(f"Failed to publish event update for event {event_id}: {e}")

        logger.info(f"Event {event_id} updated: {sorted(changes)}")
        return event

    async def decrement_available_seats(self, session: Session, event_id: int) -> int:
        """
        Take one seat from the counter if any is left.
        Single conditional UPDATE, so concurrent callers cannot drive it below zero.

        Returns:
            Number of rows updated (0 when sold out or the event is gone)
        """
        return session.query(Event).filter(
            Event.id == event_id,
            Event.available_seats > 0
        ).update({
            Event.available_seats: Event.available_seats - 1,
            Event.version: Event.version + 1,
            Event.updated_at: datetime.now(timezone.utc)
        }, synchronize_session=False)

    async def increment_available_seats(self, session: Session, event_id: int) -> int:
        """
        Give one seat back to the counter without exceeding capacity.

        Returns:
            Number of rows updated (0 when the counter is already at capacity)
        """
        return session.query(Event).filter(
            Event.id == event_id,
            Event.available_seats < Event.total_seats
        ).update({
            Event.available_seats: Event.available_seats + 1,
            Event.version: Event.version + 1,
            Event.updated_at: datetime.now(timezone.utc)
        }, synchronize_session=False)

    async def count_active_tickets(self, session: Session, event_id: int) -> int:
        """Count booked or used tickets of an event."""
        return session.query(func.count(Ticket.id)).filter(
            Ticket.event_id == event_id,
            Ticket.status.in_(ACTIVE_TICKET_STATUSES)
        ).scalar() or 0

    async def reconcile_available_seats(self, event_id: int) -> Dict[str, Any]:
        """
        Recompute the counter from the active tickets and repair drift.
        Used after an InconsistentState was reported.

        Returns:
            Reconciliation summary
        """
        with db_manager.get_session() as session:
            event = session.query(Event).filter(Event.id == event_id).with_for_update().first()
            if not event:
                raise EventNotFound(event_id)

            active = await self.count_active_tickets(session, event_id)
            expected = event.total_seats - active
            previous = event.available_seats

            if expected < 0:
                raise BookingValidationError(
                    f"Event {event_id} has {active} active tickets for {event.total_seats} seats",
                    {"event_id": event_id, "active_tickets": active, "total_seats": event.total_seats}
                )

            corrected = previous != expected
            if corrected:
                logger.warning(
                    f"Reconciling event {event_id}: available_seats {previous} -> {expected} "
                    f"({active} active tickets of {event.total_seats})"
                )
                event.available_seats = expected
                event.version += 1

            total_seats = event.total_seats

        return {
            "event_id": event_id,
            "total_seats": total_seats,
            "active_tickets": active,
            "previous_available_seats": previous,
            "available_seats": expected,
            "corrected": corrected,
        }


# Global service instance
event_service = EventService()
