"""
Event API endpoints for Seatbook.
Event creation and reads, seat availability and the live seat map.
"""

import json
from fastapi import APIRouter, Depends, Path, WebSocket, WebSocketDisconnect, status
import logging

from seatbook.api.dependencies import get_authenticated_user, get_organizer_user
from seatbook.core.config import config
from seatbook.core.exceptions import EventNotFound
from seatbook.services.availability_service import availability_service, AvailabilitySnapshot
from seatbook.services.availability_watcher import AvailabilityWatcher
from seatbook.services.event_service import event_service
from seatbook.services.seat_map import SeatMap, SeatSelection
from seatbook.schemas.ticketing import (
    EventCreate,
    EventUpdate,
    EventResponse,
    BookedSeatsResponse,
    SeatMapResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


async def _build_seat_map() -> SeatMap:
    seat_map_config = await config.get_seat_map_config()
    return SeatMap(seat_map_config["rows"], seat_map_config["seats_per_row"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    user_info: dict = Depends(get_organizer_user)
):
    """Create an event. Every seat starts available."""
    event = await event_service.create_event(event_data, created_by=user_info["user_id"])
    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: int = Path(..., gt=0)):
    event = await event_service.get_event(event_id)
    return EventResponse.model_validate(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_data: EventUpdate,
    event_id: int = Path(..., gt=0),
    user_info: dict = Depends(get_authenticated_user)
):
    """
    Edit event details. Only the owner or an admin may edit.
    Seat counters cannot be changed here.
    """
    event = await event_service.update_event_details(
        event_id,
        event_data,
        user_id=user_info["user_id"],
        is_admin=user_info["is_admin"]
    )
    return EventResponse.model_validate(event)


@router.get("/{event_id}/booked-seats", response_model=BookedSeatsResponse)
async def get_booked_seats(event_id: int = Path(..., gt=0)):
    """
    Seats held by active tickets.
    Advisory only: a booking re-checks against storage.
    """
    event = await event_service.get_event(event_id)
    booked = await availability_service.get_booked_seats(event_id)

    return BookedSeatsResponse(
        event_id=event_id,
        booked_seats=sorted(booked),
        available_seats=event.available_seats,
        total_seats=event.total_seats
    )


@router.get("/{event_id}/seat-map", response_model=SeatMapResponse)
async def get_seat_map(event_id: int = Path(..., gt=0)):
    """Seat grid with booked/available state per seat."""
    event = await event_service.get_event(event_id)
    booked = await availability_service.get_booked_seats(event_id)
    seat_map = await _build_seat_map()

    return SeatMapResponse(
        event_id=event_id,
        rows=seat_map.rows,
        seats_per_row=seat_map.seats_per_row,
        available_seats=event.available_seats,
        total_seats=event.total_seats,
        grid=seat_map.render(booked)
    )


@router.websocket("/{event_id}/seats/ws")
async def seat_selection_socket(websocket: WebSocket, event_id: int):
    """
    Live seat map for one booking dialog.

    Client messages:
        {"action": "select", "seat_id": "A1"}
        {"action": "clear"}
        {"action": "refresh"}

    Server messages: "availability" on every change, "selection" after each
    select/clear, "selection_cleared" when the selected seat was booked by
    someone else, "error" on bad input.
    """
    await websocket.accept()

    seat_map = await _build_seat_map()
    selection = SeatSelection(seat_map)

    async def send_availability(snapshot: AvailabilitySnapshot):
        previous = selection.selected_seat
        cleared = selection.apply_booked_seats(snapshot.booked_seats)
        if cleared:
            await websocket.send_json({
                "type": "selection_cleared",
                "seat_id": previous,
                "reason": "seat_booked"
            })
        await websocket.send_json({
            "type": "availability",
            **snapshot.to_dict(),
            "selection": selection.to_dict(),
            "grid": selection.render()
        })

    watcher = AvailabilityWatcher(event_id, send_availability)
    try:
        await watcher.start()
    except EventNotFound as e:
        await websocket.send_json({"type": "error", "error_code": e.error_code, "error_message": e.message})
        await websocket.close(code=4404)
        return

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON received on seat socket")
                await websocket.send_json({"type": "error", "error_message": "Invalid JSON"})
                continue

            action = message.get("action") if isinstance(message, dict) else None

            if action == "select":
                seat_id = str(message.get("seat_id") or "").strip().upper()
                accepted = selection.select_seat(seat_id)
                await websocket.send_json({"type": "selection", "accepted": accepted, **selection.to_dict()})
            elif action == "clear":
                selection.reset()
                await websocket.send_json({"type": "selection", "accepted": True, **selection.to_dict()})
            elif action == "refresh":
                previous_snapshot = watcher.snapshot
                snapshot = await watcher.refresh()
                # Unchanged snapshots are not pushed by the watcher
                if snapshot is previous_snapshot and snapshot is not None:
                    await send_availability(snapshot)
            else:
                await websocket.send_json({"type": "error", "error_message": f"Unknown action: {action}"})

    except WebSocketDisconnect:
        logger.info(f"Seat socket for event {event_id} disconnected")
    finally:
        await watcher.stop()
