"""
Ticket API endpoints for Seatbook.
Handles seat booking, ticket listing, cancellation and QR codes.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import Response
from typing import List, Optional
import logging

from seatbook.api.dependencies import get_authenticated_user, get_current_user_id
from seatbook.models.ticketing import TicketStatus
from seatbook.services.booking_service import booking_service
from seatbook.services.event_service import event_service
from seatbook.services.ticket_service import ticket_service
from seatbook.schemas.ticketing import (
    TicketBookRequest,
    TicketStatusEnum,
    TicketResponse,
    TicketWithEventResponse,
    BookingResponse,
    CancellationResponse,
    ErrorResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse}
    }
)
async def book_ticket(
    booking_data: TicketBookRequest,
    user_id: int = Depends(get_current_user_id)
):
    """
    Book a seat at the event's current price.

    Errors:
        409 SEAT_ALREADY_BOOKED / SOLD_OUT: refresh availability and pick again
        500 BOOKING_FAILED: nothing was kept, safe to retry
    """
    event = await event_service.get_event(booking_data.event_id)

    result = await booking_service.book_ticket(
        event_id=booking_data.event_id,
        user_id=user_id,
        seat_number=booking_data.seat_number,
        price=event.price
    )

    return BookingResponse(
        ticket=TicketResponse.model_validate(result.ticket),
        available_seats=result.available_seats
    )


@router.get("", response_model=List[TicketWithEventResponse])
async def get_my_tickets(
    status_filter: Optional[TicketStatusEnum] = Query(None, alias="status", description="Filter by ticket status"),
    user_id: int = Depends(get_current_user_id)
):
    """Tickets of the current user with their events, newest first."""
    ticket_status = TicketStatus(status_filter.value) if status_filter else None
    tickets = await ticket_service.get_user_tickets(user_id, status=ticket_status)
    return [TicketWithEventResponse.model_validate(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketWithEventResponse)
async def get_ticket(
    ticket_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user)
):
    ticket = await ticket_service.get_ticket(
        ticket_id,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )
    return TicketWithEventResponse.model_validate(ticket)


@router.post("/{ticket_id}/cancel", response_model=CancellationResponse)
async def cancel_ticket(
    ticket_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user)
):
    """Cancel a booked ticket; the seat becomes available again."""
    ticket, available_seats = await booking_service.cancel_ticket(
        ticket_id,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )

    return CancellationResponse(
        ticket=TicketResponse.model_validate(ticket),
        available_seats=available_seats
    )


@router.get("/{ticket_id}/qr", response_class=Response)
async def get_ticket_qr(
    ticket_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user)
):
    """Ticket verification code as a PNG QR image."""
    png_bytes = await ticket_service.render_ticket_qr(
        ticket_id,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )
    return Response(content=png_bytes, media_type="image/png")
