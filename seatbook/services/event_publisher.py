"""
Change notification publisher for Seatbook.
Publishes ticket and event changes to a per-event Redis channel.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from seatbook.db.redis_client import RedisManager

logger = logging.getLogger(__name__)


class TicketEventPublisher:
    """
    Publishes "tickets for event X changed" / "event X updated" notifications.
    Subscribers only use them as a refresh trigger.
    """

    def __init__(self, redis_manager: RedisManager, channel_prefix: str = "seatbook:events"):
        self.redis_manager = redis_manager
        self.channel_prefix = channel_prefix

    def channel_for(self, event_id: int) -> str:
        return f"{self.channel_prefix}:{event_id}"

    async def _publish(self, event_id: int, message_type: str, payload: Dict[str, Any]) -> bool:
        message = {
            "type": message_type,
            "event_id": event_id,
            "published_at": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        try:
            await self.redis_manager.publish(self.channel_for(event_id), json.dumps(message))
            logger.info(f"Published {message_type} for event {event_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish {message_type} for event {event_id}: {e}")
            return False

    @staticmethod
    def _ticket_data(ticket) -> Dict[str, Any]:
        return {
            "id": ticket.id,
            "seat_number": ticket.seat_number,
            "status": ticket.status.value if ticket.status else None,
        }

    async def publish_ticket_booked(self, ticket, available_seats: Optional[int] = None) -> bool:
        """Publish a TicketBooked notification."""
        return await self._publish(ticket.event_id, "TicketBooked", {
            "ticket": self._ticket_data(ticket),
            "available_seats": available_seats,
        })

    async def publish_ticket_cancelled(self, ticket, available_seats: Optional[int] = None) -> bool:
        """Publish a TicketCancelled notification."""
        return await self._publish(ticket.event_id, "TicketCancelled", {
            "ticket": self._ticket_data(ticket),
            "available_seats": available_seats,
        })

    async def publish_ticket_used(self, ticket) -> bool:
        """Publish a TicketUsed notification."""
        return await self._publish(ticket.event_id, "TicketUsed", {
            "ticket": self._ticket_data(ticket),
        })

    async def publish_event_updated(self, event) -> bool:
        """Publish an EventUpdated notification."""
        return await self._publish(event.id, "EventUpdated", {
            "available_seats": event.available_seats,
            "total_seats": event.total_seats,
            "status": event.status.value if event.status else None,
        })
