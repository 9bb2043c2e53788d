"""
Ticket Service for Seatbook.
Ticket reads, entry validation and QR rendering.
"""

from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import joinedload
import logging

from seatbook.core.config import config
from seatbook.core.exceptions import EventNotFound, TicketNotFound, TicketStateError
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.models.ticketing import Event, Ticket, TicketStatus
from seatbook.utils.qr_code import render_qr_png, verify_qr_signature
from .event_publisher import TicketEventPublisher

logger = logging.getLogger(__name__)


class TicketService:
    """
    Read side of tickets plus the booked -> used transition.
    """

    def __init__(self):
        self.qr_secret = None
        self.event_publisher = None

    async def _get_event_publisher(self) -> TicketEventPublisher:
        """Get event publisher instance."""
        if not self.event_publisher:
            refresh_config = await config.get_refresh_config()
            self.event_publisher = TicketEventPublisher(redis_manager, refresh_config["channel_prefix"])
        return self.event_publisher

    async def get_user_tickets(self, user_id: int, status: Optional[TicketStatus] = None) -> List[Ticket]:
        """
        Get a user's tickets with their events, newest booking first.

        Args:
            user_id: ID of the user
            status: Optional status filter

        Returns:
            List of tickets
        """
        with db_manager.get_session() as session:
            query = session.query(Ticket).options(joinedload(Ticket.event)).filter(
                Ticket.user_id == user_id
            )
            if status is not None:
                query = query.filter(Ticket.status == status)
            return query.order_by(Ticket.booking_date.desc()).all()

    async def get_ticket(self, ticket_id: int, user_id: Optional[int] = None, is_admin: bool = False) -> Ticket:
        """
        Get one ticket visible to the caller.

        Raises:
            TicketNotFound: Missing or owned by another user
        """
        with db_manager.get_session() as session:
            ticket = session.query(Ticket).options(joinedload(Ticket.event)).filter(
                Ticket.id == ticket_id
            ).first()

        if not ticket or (not is_admin and ticket.user_id != user_id):
            raise TicketNotFound(f"Ticket {ticket_id} not found", {"ticket_id": ticket_id})
        return ticket

    async def get_event_tickets(self, event_id: int, user_id: Optional[int] = None, is_admin: bool = False) -> List[Ticket]:
        """
        Get every ticket of an event. Only the event owner or an admin may list them.

        Raises:
            EventNotFound: Missing event or caller is not the owner
        """
        with db_manager.get_session() as session:
            event = session.query(Event).filter(Event.id == event_id).first()
            if not event or (not is_admin and event.created_by != user_id):
                raise EventNotFound(event_id)

            return session.query(Ticket).filter(
                Ticket.event_id == event_id
            ).order_by(Ticket.booking_date.desc()).all()

    @staticmethod
    def _is_event_staff(ticket: Ticket, user_id: Optional[int], is_admin: bool) -> bool:
        if is_admin or user_id is None:
            return True
        return ticket.event is not None and ticket.event.created_by == user_id

    async def use_ticket(self, ticket_id: int, user_id: Optional[int] = None, is_admin: bool = False) -> Ticket:
        """
        Mark a ticket as used at entry. The seat stays held.
        Organizers may only admit tickets of their own events.

        Raises:
            TicketNotFound: Ticket does not exist
            TicketStateError: Ticket is not booked
        """
        with db_manager.get_session() as session:
            ticket = session.query(Ticket).options(joinedload(Ticket.event)).filter(
                Ticket.id == ticket_id
            ).first()
            if not ticket or not self._is_event_staff(ticket, user_id, is_admin):
                raise TicketNotFound(f"Ticket {ticket_id} not found", {"ticket_id": ticket_id})

            updated = session.query(Ticket).filter(
                Ticket.id == ticket_id,
                Ticket.status == TicketStatus.BOOKED
            ).update({
                Ticket.status: TicketStatus.USED,
                Ticket.used_at: datetime.now(timezone.utc)
            }, synchronize_session=False)

            if not updated:
                raise TicketStateError(
                    f"Ticket with status '{ticket.status.value}' cannot be used",
                    {"ticket_id": ticket_id, "status": ticket.status.value}
                )
            session.refresh(ticket, ["status", "used_at"])

        logger.info(f"Ticket {ticket.ticket_number} marked as used")

        try:
            publisher = await self._get_event_publisher()
            await publisher.publish_ticket_used(ticket)
        except Exception as e:
            logger.error(f"Failed to publish use of ticket {ticket_id}: {e}")

        return ticket

    async def verify_ticket(self, qr_code: str, user_id: Optional[int] = None, is_admin: bool = False) -> Ticket:
        """
        Look up a ticket by its verification code and check the signature.

        Raises:
            TicketNotFound: Unknown or forged code, or an event the caller does not organize
        """
        if not self.qr_secret:
            self.qr_secret = await config.get_qr_secret()

        with db_manager.get_session() as session:
            ticket = session.query(Ticket).options(joinedload(Ticket.event)).filter(
                Ticket.qr_code == qr_code
            ).first()

        if not ticket or not verify_qr_signature(qr_code, ticket.ticket_number, self.qr_secret):
            logger.warning("Ticket verification failed for presented code")
            raise TicketNotFound("Invalid ticket code")

        if not self._is_event_staff(ticket, user_id, is_admin):
            logger.warning(f"User {user_id} tried to verify ticket {ticket.id} of an event they do not organize")
            raise TicketNotFound("Invalid ticket code")

        return ticket

    async def render_ticket_qr(self, ticket_id: int, user_id: Optional[int] = None, is_admin: bool = False) -> bytes:
        """Render a ticket's verification code as PNG."""
        ticket = await self.get_ticket(ticket_id, user_id=user_id, is_admin=is_admin)
        return render_qr_png(ticket.qr_code)


# Global service instance
ticket_service = TicketService()
