"""
Availability Service for Seatbook.
Read path for the seats currently held by active tickets.
Results are advisory; the booking transaction re-checks against storage.
"""

from dataclasses import dataclass, field
from typing import Set, FrozenSet
import logging

from seatbook.core.config import config
from seatbook.core.exceptions import EventNotFound
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.models.ticketing import Event, Ticket, ACTIVE_TICKET_STATUSES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Booked seats and counter of one event, read together."""

    event_id: int
    booked_seats: FrozenSet[str] = field(default_factory=frozenset)
    available_seats: int = 0
    total_seats: int = 0

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "booked_seats": sorted(self.booked_seats),
            "available_seats": self.available_seats,
            "total_seats": self.total_seats,
        }


class AvailabilityService:
    """
    Seat availability queries with a short-lived Redis cache.
    """

    def __init__(self):
        self.cache_config = None

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.cache_config:
            self.cache_config = await config.get_cache_config()

    @staticmethod
    def _cache_key(event_id: int) -> str:
        return f"booked_seats:event:{event_id}"

    async def get_booked_seats(self, event_id: int, use_cache: bool = True) -> Set[str]:
        """
        Get the seat identifiers held by booked or used tickets of an event.

        Args:
            event_id: ID of the event
            use_cache: Whether to use Redis cache

        Returns:
            Set of seat identifiers; cancelled tickets and empty seat numbers are excluded
        """
        await self._get_configs()

        if use_cache:
            cached = await redis_manager.get_json(self._cache_key(event_id))
            if cached is not None:
                return set(cached)

        booked = self._query_booked_seats(event_id)

        if use_cache:
            await redis_manager.set_json(
                self._cache_key(event_id),
                sorted(booked),
                ttl=self.cache_config["booked_seats_ttl"]
            )

        return booked

    def _query_booked_seats(self, event_id: int) -> Set[str]:
        with db_manager.get_session() as session:
            rows = session.query(Ticket.seat_number).filter(
                Ticket.event_id == event_id,
                Ticket.status.in_(ACTIVE_TICKET_STATUSES),
                Ticket.seat_number.isnot(None)
            ).all()

        return {seat_number for (seat_number,) in rows if seat_number}

    async def get_seat_availability(self, event_id: int) -> AvailabilitySnapshot:
        """
        Read the booked set and the event counter straight from storage.

        Raises:
            EventNotFound: If the event does not exist
        """
        with db_manager.get_session() as session:
            event = session.query(Event).filter(Event.id == event_id).first()
            if not event:
                raise EventNotFound(event_id)
            available_seats = event.available_seats
            total_seats = event.total_seats

        booked = self._query_booked_seats(event_id)

        return AvailabilitySnapshot(
            event_id=event_id,
            booked_seats=frozenset(booked),
            available_seats=available_seats,
            total_seats=total_seats
        )

    async def is_seat_available(self, event_id: int, seat_number: str, use_cache: bool = False) -> bool:
        """Check a single seat against the booked set."""
        booked = await self.get_booked_seats(event_id, use_cache=use_cache)
        return seat_number not in booked

    async def invalidate_booked_seats(self, event_id: int):
        """Drop the cached booked set of an event."""
        await redis_manager.delete(self._cache_key(event_id))


# Global service instance
availability_service = AvailabilityService()
