"""Pytest configuration and shared fixtures.

Settings are read from the environment once, so the test database and feature
switches are set here before anything from ticketdesk is imported.
"""

import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

_db_dir = tempfile.mkdtemp(prefix="ticketdesk-tests-")
os.environ["TICKETDESK_DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["TICKETDESK_SCHEDULER_ENABLED"] = "false"
os.environ["TICKETDESK_RATE_LIMIT_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ticketdesk.database import Base, SessionLocal, engine  # noqa: E402
from ticketdesk.main import app  # noqa: E402
from ticketdesk.models.event import Event, EventStatus, PricingType  # noqa: E402
from ticketdesk.models.user import User  # noqa: E402
from ticketdesk.schemas.user import UserCreate  # noqa: E402
from ticketdesk.services.auth import AuthService  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    import ticketdesk.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _make_user(db, email: str, name: str, is_admin: bool = False) -> User:
    return AuthService.create_user(
        db, UserCreate(email=email, name=name, password="correct-horse"), is_admin=is_admin
    )


@pytest.fixture
def attendee(db) -> User:
    return _make_user(db, "ana@example.com", "Ana")


@pytest.fixture
def other_attendee(db) -> User:
    return _make_user(db, "bo@example.com", "Bo")


@pytest.fixture
def admin(db) -> User:
    return _make_user(db, "admin@example.com", "Admin", is_admin=True)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {AuthService.token_for_user(user)}"}


@pytest.fixture
def make_event(db, admin):
    """Insert an event row directly, bypassing validation."""

    def factory(
        seats: int = 10,
        available: int = None,
        price: str = "25.00",
        days_ahead: int = 30,
        status: EventStatus = EventStatus.PUBLISHED,
        title: str = "Harbour Jazz Night"
    ) -> Event:
        amount = Decimal(price)
        event = Event(
            organizer_id=admin.id,
            title=title,
            description="",
            category="concert",
            date=datetime.utcnow() + timedelta(days=days_ahead),
            status=status,
            venue_name="Pier 4",
            venue_country="NZ",
            venue_capacity=max(seats, 1),
            total_seats=seats,
            available_seats=seats if available is None else available,
            pricing_type=PricingType.PAID if amount > 0 else PricingType.FREE,
            pricing_amount=amount,
            pricing_currency="USD",
            bookings_count=0,
            revenue=Decimal("0")
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    return factory


def event_payload(**overrides) -> dict:
    """A valid create-event body in the API's camelCase shape."""
    payload = {
        "title": "Harbour Jazz Night",
        "description": "Late set on the pier",
        "category": "concert",
        "date": (datetime.utcnow() + timedelta(days=30)).isoformat(),
        "status": "published",
        "venue": {"name": "Pier 4", "city": "Wellington", "country": "NZ", "capacity": 100},
        "seating": {"totalSeats": 80, "availableSeats": 80},
        "pricing": {"type": "paid", "amount": "25.00", "currency": "USD"},
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(payload.get(key), dict):
            payload[key] = {**payload[key], **value}
        else:
            payload[key] = value
    return payload
