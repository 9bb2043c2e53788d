"""
Tests for Admin API endpoints.
"""

from seatbook.models.ticketing import TicketStatus


def _book(client, auth_headers, event_id, seat, user_id=1):
    response = client.post(
        "/api/v1/tickets",
        json={"event_id": event_id, "seat_number": seat},
        headers=auth_headers(user_id=user_id)
    )
    assert response.status_code == 201
    return response.json()["ticket"]


class TestAdminAPI:
    """Test admin and organizer endpoints."""

    def test_event_tickets_for_owner(self, client, auth_headers, event_factory):
        event = event_factory(created_by=20)
        _book(client, auth_headers, event.id, "A1", user_id=1)
        _book(client, auth_headers, event.id, "A2", user_id=2)

        response = client.get(f"/api/v1/admin/events/{event.id}/tickets", headers=auth_headers(user_id=20, role="organizer"))

        assert response.status_code == 200
        assert sorted(t["seat_number"] for t in response.json()) == ["A1", "A2"]

    def test_event_tickets_hidden_from_other_organizers(self, client, auth_headers, event_factory):
        event = event_factory(created_by=20)

        response = client.get(f"/api/v1/admin/events/{event.id}/tickets", headers=auth_headers(user_id=21, role="organizer"))

        assert response.status_code == 404

    def test_event_tickets_require_organizer(self, client, auth_headers, event_factory):
        event = event_factory(created_by=20)

        response = client.get(f"/api/v1/admin/events/{event.id}/tickets", headers=auth_headers(user_id=20, role="user"))

        assert response.status_code == 403

    def test_verify_and_use_ticket(self, client, auth_headers, event_factory, read_event):
        event = event_factory(total_seats=4, title="Door Check")
        ticket = _book(client, auth_headers, event.id, "D1")
        staff = auth_headers(user_id=30, role="admin")

        verified = client.post("/api/v1/admin/tickets/verify", json={"qr_code": ticket["qr_code"]}, headers=staff)
        assert verified.status_code == 200
        assert verified.json()["id"] == ticket["id"]
        assert verified.json()["event"]["title"] == "Door Check"

        used = client.post(f"/api/v1/admin/tickets/{ticket['id']}/use", headers=staff)
        assert used.status_code == 200
        assert used.json()["status"] == "used"
        assert used.json()["used_at"] is not None

        again = client.post(f"/api/v1/admin/tickets/{ticket['id']}/use", headers=staff)
        assert again.status_code == 409

        # A used ticket still holds its seat
        assert read_event(event.id).available_seats == 3

    def test_entry_checks_scoped_to_event_organizer(self, client, auth_headers, event_factory):
        event = event_factory(total_seats=4, created_by=20)
        ticket = _book(client, auth_headers, event.id, "B2")
        outsider = auth_headers(user_id=21, role="organizer")
        owner = auth_headers(user_id=20, role="organizer")

        verify = client.post("/api/v1/admin/tickets/verify", json={"qr_code": ticket["qr_code"]}, headers=outsider)
        use = client.post(f"/api/v1/admin/tickets/{ticket['id']}/use", headers=outsider)

        assert verify.status_code == 404
        assert verify.json()["error_code"] == "TICKET_NOT_FOUND"
        assert use.status_code == 404

        assert client.post("/api/v1/admin/tickets/verify", json={"qr_code": ticket["qr_code"]}, headers=owner).status_code == 200
        used = client.post(f"/api/v1/admin/tickets/{ticket['id']}/use", headers=owner)
        assert used.status_code == 200
        assert used.json()["status"] == "used"

    def test_verify_unknown_code(self, client, auth_headers):
        response = client.post(
            "/api/v1/admin/tickets/verify",
            json={"qr_code": "0" * 72},
            headers=auth_headers(role="admin")
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "TICKET_NOT_FOUND"

    def test_reconcile(self, client, auth_headers, event_factory, ticket_factory, read_event):
        event = event_factory(total_seats=5, available_seats=5)
        ticket_factory(event.id, "A1", status=TicketStatus.BOOKED)

        response = client.post(f"/api/v1/admin/events/{event.id}/reconcile", headers=auth_headers(role="admin"))

        assert response.status_code == 200
        data = response.json()
        assert data["corrected"] is True
        assert data["previous_available_seats"] == 5
        assert data["available_seats"] == 4
        assert read_event(event.id).available_seats == 4

    def test_reconcile_requires_admin(self, client, auth_headers, event_factory):
        event = event_factory()

        response = client.post(f"/api/v1/admin/events/{event.id}/reconcile", headers=auth_headers(role="organizer"))

        assert response.status_code == 403
