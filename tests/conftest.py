"""
Test configuration and fixtures for Seatbook.
Each test runs against a fresh SQLite database with Redis mocked out.
"""

import os

os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["QR_SECRET"] = "test-qr-secret"

import pytest
import jwt
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from unittest.mock import AsyncMock, patch
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from seatbook.main import app
from seatbook.db.database import db_manager
from seatbook.db.redis_client import redis_manager
from seatbook.models.ticketing import Base, Event, EventStatus, Ticket, TicketStatus

TEST_JWT_SECRET = "test-jwt-secret"
TEST_QR_SECRET = "test-qr-secret"


@pytest.fixture(autouse=True)
def database(tmp_path):
    """Bind the global database manager to a throwaway SQLite file."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'seatbook_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    db_manager.use_engine(engine)

    yield db_manager

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    db_manager._initialized = False


@pytest.fixture(autouse=True)
def mock_redis():
    """Mock every Redis call; the subscription is unavailable so watchers poll."""
    with patch.object(redis_manager, "initialize", AsyncMock()), \
         patch.object(redis_manager, "get_json", AsyncMock(return_value=None)), \
         patch.object(redis_manager, "set_json", AsyncMock(return_value=True)), \
         patch.object(redis_manager, "delete", AsyncMock(return_value=True)), \
         patch.object(redis_manager, "publish", AsyncMock(return_value=1)), \
         patch.object(redis_manager, "subscribe", AsyncMock(return_value=None)), \
         patch.object(redis_manager, "health_check", AsyncMock(return_value=True)):
        yield redis_manager


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def event_factory():
    """Insert events directly, bypassing the service layer."""

    def _create_event(
        total_seats: int = 10,
        available_seats: int = None,
        price: Decimal = Decimal("25.00"),
        created_by: int = 100,
        status: EventStatus = EventStatus.UPCOMING,
        title: str = "Spring Concert"
    ) -> Event:
        event = Event(
            title=title,
            description="An evening of music",
            venue="Main Hall",
            event_date=datetime.now(timezone.utc) + timedelta(days=30),
            price=price,
            total_seats=total_seats,
            available_seats=total_seats if available_seats is None else available_seats,
            status=status,
            created_by=created_by,
            version=1
        )
        with db_manager.get_session() as session:
            session.add(event)
            session.flush()
            session.refresh(event)
        return event

    return _create_event


@pytest.fixture
def ticket_factory():
    """Insert tickets directly, bypassing the booking protocol."""
    counter = {"value": 0}

    def _create_ticket(
        event_id: int,
        seat_number: str,
        user_id: int = 1,
        status: TicketStatus = TicketStatus.BOOKED,
        price: Decimal = Decimal("25.00")
    ) -> Ticket:
        counter["value"] += 1
        ticket = Ticket(
            event_id=event_id,
            user_id=user_id,
            seat_number=seat_number,
            status=status,
            price=price,
            ticket_number=f"TKT-20990101-FIXTURE{counter['value']:02d}",
            qr_code=f"fixture-qr-{counter['value']}",
            booking_date=datetime.now(timezone.utc)
        )
        with db_manager.get_session() as session:
            session.add(ticket)
            session.flush()
            session.refresh(ticket)
        return ticket

    return _create_ticket


def make_token(user_id: int = 1, role: str = "user", expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {
        "user_id": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user and role."""

    def _headers(user_id: int = 1, role: str = "user") -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, role)}"}

    return _headers


def get_event_row(event_id: int) -> Event:
    with db_manager.get_session() as session:
        return session.query(Event).filter(Event.id == event_id).first()


def get_tickets(event_id: int):
    with db_manager.get_session() as session:
        return session.query(Ticket).filter(Ticket.event_id == event_id).all()


@pytest.fixture
def read_event():
    return get_event_row


@pytest.fixture
def read_tickets():
    return get_tickets
