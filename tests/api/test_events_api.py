"""
Tests for Event API endpoints and health checks.
"""

from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock

from seatbook.models.ticketing import TicketStatus


def _event_payload(**overrides):
    payload = {
        "title": "Harbour Festival",
        "description": "Open air evening",
        "venue": "Harbour Stage",
        "event_date": (datetime.now(timezone.utc) + timedelta(days=20)).isoformat(),
        "price": "35.00",
        "total_seats": 32,
    }
    payload.update(overrides)
    return payload


class TestEventsAPI:
    """Test event endpoints."""

    def test_organizer_creates_event(self, client, auth_headers):
        response = client.post("/api/v1/events", json=_event_payload(), headers=auth_headers(user_id=9, role="organizer"))

        assert response.status_code == 201
        data = response.json()
        assert data["total_seats"] == 32
        assert data["available_seats"] == 32
        assert data["created_by"] == 9
        assert data["status"] == "upcoming"

    def test_client_cannot_set_available_seats(self, client, auth_headers):
        response = client.post(
            "/api/v1/events",
            json=_event_payload(total_seats=10, available_seats=3),
            headers=auth_headers(role="organizer")
        )

        assert response.status_code == 201
        assert response.json()["available_seats"] == 10

    def test_plain_user_cannot_create_event(self, client, auth_headers):
        response = client.post("/api/v1/events", json=_event_payload(), headers=auth_headers(role="user"))

        assert response.status_code == 403

    def test_past_event_rejected(self, client, auth_headers):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()

        response = client.post("/api/v1/events", json=_event_payload(event_date=past), headers=auth_headers(role="admin"))

        assert response.status_code == 422

    def test_get_event(self, client, event_factory):
        event = event_factory(title="Readable Show")

        response = client.get(f"/api/v1/events/{event.id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Readable Show"

    def test_get_missing_event(self, client):
        response = client.get("/api/v1/events/4040")

        assert response.status_code == 404
        assert response.json()["error_code"] == "EVENT_NOT_FOUND"

    def test_owner_updates_event(self, client, auth_headers, event_factory):
        event = event_factory(created_by=9)

        response = client.patch(
            f"/api/v1/events/{event.id}",
            json={"venue": "Moved Venue", "status": "active"},
            headers=auth_headers(user_id=9, role="organizer")
        )

        assert response.status_code == 200
        assert response.json()["venue"] == "Moved Venue"
        assert response.json()["status"] == "active"

    def test_update_cannot_touch_counter(self, client, auth_headers, event_factory):
        event = event_factory(created_by=9)

        response = client.patch(
            f"/api/v1/events/{event.id}",
            json={"available_seats": 1000},
            headers=auth_headers(user_id=9, role="organizer")
        )

        assert response.status_code == 422

    def test_other_organizer_cannot_update(self, client, auth_headers, event_factory):
        event = event_factory(created_by=9)

        response = client.patch(
            f"/api/v1/events/{event.id}",
            json={"title": "Not Mine"},
            headers=auth_headers(user_id=10, role="organizer")
        )

        assert response.status_code == 404


class TestSeatAvailabilityAPI:
    """Test booked-seats and seat-map endpoints."""

    def test_booked_seats(self, client, event_factory, ticket_factory):
        event = event_factory(total_seats=10, available_seats=8)
        ticket_factory(event.id, "B1")
        ticket_factory(event.id, "A1", status=TicketStatus.USED)
        ticket_factory(event.id, "A2", status=TicketStatus.CANCELLED)

        response = client.get(f"/api/v1/events/{event.id}/booked-seats")

        assert response.status_code == 200
        assert response.json() == {
            "event_id": event.id,
            "booked_seats": ["A1", "B1"],
            "available_seats": 8,
            "total_seats": 10,
        }

    def test_seat_map(self, client, event_factory, ticket_factory):
        event = event_factory(total_seats=32, available_seats=31)
        ticket_factory(event.id, "C5")

        response = client.get(f"/api/v1/events/{event.id}/seat-map")

        assert response.status_code == 200
        data = response.json()
        assert data["rows"] == 4
        assert data["seats_per_row"] == 8
        assert [row["row"] for row in data["grid"]] == ["A", "B", "C", "D"]
        seats = {seat["seat_id"]: seat["state"] for row in data["grid"] for seat in row["seats"]}
        assert len(seats) == 32
        assert seats["C5"] == "booked"
        assert seats["A1"] == "available"

    def test_seat_map_missing_event(self, client):
        assert client.get("/api/v1/events/4040/seat-map").status_code == 404


class TestHealthAPI:

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["redis"] == "healthy"

    def test_health_degraded_without_redis(self, client, mock_redis):
        mock_redis.health_check = AsyncMock(return_value=False)

        data = client.get("/api/v1/health").json()

        assert data["status"] == "degraded"
        assert data["redis"] == "unhealthy"

    def test_simple_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "seatbook"}
