"""
Admin API endpoints for Seatbook.
Entry validation, event ticket listings and seat counter reconciliation.
"""

from fastapi import APIRouter, Depends, Path
from typing import List
import logging

from seatbook.api.dependencies import get_admin_user, get_organizer_user
from seatbook.services.event_service import event_service
from seatbook.services.ticket_service import ticket_service
from seatbook.schemas.ticketing import (
    TicketVerifyRequest,
    TicketResponse,
    TicketWithEventResponse,
    ReconciliationResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/events/{event_id}/tickets", response_model=List[TicketResponse])
async def get_event_tickets(
    event_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_organizer_user)
):
    """All tickets of an event. Organizers only see their own events."""
    tickets = await ticket_service.get_event_tickets(
        event_id,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )
    return [TicketResponse.model_validate(ticket) for ticket in tickets]


@router.post("/tickets/verify", response_model=TicketWithEventResponse)
async def verify_ticket(
    verify_data: TicketVerifyRequest,
    user_info: dict = Depends(get_organizer_user)
):
    """Look up a ticket from a scanned QR code. Organizers only see their own events."""
    ticket = await ticket_service.verify_ticket(
        verify_data.qr_code,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )
    logger.info(f"Ticket {ticket.ticket_number} verified by user {user_info['user_id']}")
    return TicketWithEventResponse.model_validate(ticket)


@router.post("/tickets/{ticket_id}/use", response_model=TicketResponse)
async def use_ticket(
    ticket_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_organizer_user)
):
    """Mark a ticket as used at entry. Organizers only admit to their own events."""
    ticket = await ticket_service.use_ticket(
        ticket_id,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )
    return TicketResponse.model_validate(ticket)


@router.post("/events/{event_id}/reconcile", response_model=ReconciliationResponse)
async def reconcile_event(
    event_id: int = Path(..., gt=0),
    admin_info: dict = Depends(get_admin_user)
):
    """
    Recompute available_seats from active tickets.
    Run after a booking reported INCONSISTENT_STATE.
    """
    result = await event_service.reconcile_available_seats(event_id)
    logger.info(f"Event {event_id} reconciled by admin {admin_info['user_id']}: corrected={result['corrected']}")
    return ReconciliationResponse(**result)
