"""
Tests for the event aggregate and its seat counter.
"""

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from seatbook.core.exceptions import EventNotFound, BookingValidationError
from seatbook.db.database import db_manager
from seatbook.models.ticketing import EventStatus, TicketStatus
from seatbook.schemas.ticketing import EventCreate, EventUpdate
from seatbook.services.event_service import event_service


def _event_create(**overrides) -> EventCreate:
    data = {
        "title": "Jazz Night",
        "description": "Live quartet",
        "venue": "Blue Room",
        "event_date": datetime.now(timezone.utc) + timedelta(days=10),
        "price": Decimal("30.00"),
        "total_seats": 32,
    }
    data.update(overrides)
    return EventCreate(**data)


class TestCreateEvent:

    @pytest.mark.asyncio
    async def test_all_seats_start_available(self):
        event = await event_service.create_event(_event_create(total_seats=32), created_by=5)

        assert event.id is not None
        assert event.total_seats == 32
        assert event.available_seats == 32
        assert event.created_by == 5
        assert event.status == EventStatus.UPCOMING

    @pytest.mark.asyncio
    async def test_get_event_and_available_seats(self, event_factory):
        created = event_factory(total_seats=8, available_seats=3)

        event = await event_service.get_event(created.id)

        assert event.title == created.title
        assert await event_service.get_available_seats(created.id) == 3

    @pytest.mark.asyncio
    async def test_get_missing_event(self):
        with pytest.raises(EventNotFound):
            await event_service.get_event(404)


class TestUpdateEventDetails:

    @pytest.mark.asyncio
    async def test_owner_updates_details(self, event_factory, mock_redis):
        created = event_factory(created_by=5)

        event = await event_service.update_event_details(
            created.id, EventUpdate(title="Renamed Show", status="active"), user_id=5
        )

        assert event.title == "Renamed Show"
        assert event.status == EventStatus.ACTIVE
        assert event.version == 2
        assert event.available_seats == created.available_seats
        assert '"EventUpdated"' in mock_redis.publish.await_args.args[1]

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update(self, event_factory):
        created = event_factory(created_by=5)

        with pytest.raises(EventNotFound):
            await event_service.update_event_details(created.id, EventUpdate(title="Hijacked"), user_id=6)

    @pytest.mark.asyncio
    async def test_admin_can_update_any_event(self, event_factory):
        created = event_factory(created_by=5)

        event = await event_service.update_event_details(
            created.id, EventUpdate(venue="Open Air Stage"), user_id=1, is_admin=True
        )

        assert event.venue == "Open Air Stage"


class TestSeatCounter:

    @pytest.mark.asyncio
    async def test_decrement_stops_at_zero(self, event_factory, read_event):
        event = event_factory(total_seats=2)

        with db_manager.get_session() as session:
            first = await event_service.decrement_available_seats(session, event.id)
            second = await event_service.decrement_available_seats(session, event.id)
            third = await event_service.decrement_available_seats(session, event.id)

        assert (first, second, third) == (1, 1, 0)
        assert read_event(event.id).available_seats == 0

    @pytest.mark.asyncio
    async def test_increment_stops_at_capacity(self, event_factory, read_event):
        event = event_factory(total_seats=2, available_seats=1)

        with db_manager.get_session() as session:
            first = await event_service.increment_available_seats(session, event.id)
            second = await event_service.increment_available_seats(session, event.id)

        assert (first, second) == (1, 0)
        assert read_event(event.id).available_seats == 2

    @pytest.mark.asyncio
    async def test_decrement_bumps_version(self, event_factory, read_event):
        event = event_factory(total_seats=2)

        with db_manager.get_session() as session:
            await event_service.decrement_available_seats(session, event.id)

        assert read_event(event.id).version == 2

    @pytest.mark.asyncio
    async def test_missing_event_updates_nothing(self):
        with db_manager.get_session() as session:
            assert await event_service.decrement_available_seats(session, 404) == 0


class TestReconcile:

    @pytest.mark.asyncio
    async def test_repairs_drifted_counter(self, event_factory, ticket_factory, read_event):
        event = event_factory(total_seats=5, available_seats=5)
        ticket_factory(event.id, "A1")
        ticket_factory(event.id, "A2", status=TicketStatus.USED)
        ticket_factory(event.id, "A3", status=TicketStatus.CANCELLED)

        result = await event_service.reconcile_available_seats(event.id)

        assert result == {
            "event_id": event.id,
            "total_seats": 5,
            "active_tickets": 2,
            "previous_available_seats": 5,
            "available_seats": 3,
            "corrected": True,
        }
        assert read_event(event.id).available_seats == 3

    @pytest.mark.asyncio
    async def test_consistent_counter_is_untouched(self, event_factory, ticket_factory, read_event):
        event = event_factory(total_seats=5, available_seats=4)
        ticket_factory(event.id, "A1")

        result = await event_service.reconcile_available_seats(event.id)

        assert result["corrected"] is False
        assert read_event(event.id).version == 1

    @pytest.mark.asyncio
    async def test_overbooked_event_is_reported(self, event_factory, ticket_factory):
        event = event_factory(total_seats=1, available_seats=0)
        ticket_factory(event.id, "A1")
        ticket_factory(event.id, "A2")

        with pytest.raises(BookingValidationError):
            await event_service.reconcile_available_seats(event.id)

    @pytest.mark.asyncio
    async def test_missing_event(self):
        with pytest.raises(EventNotFound):
            await event_service.reconcile_available_seats(404)
