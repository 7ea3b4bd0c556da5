"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test database (SQLite in-memory for speed)
- Test client (FastAPI TestClient)
- Authentication helpers
- Calendar event factories
- A clean slate for the in-memory session stores
"""

import os

# The app creates its tables on startup; point it at SQLite before import
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timedelta
from typing import Generator, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app
from app.ai.monitoring import ai_monitor
from app.ai.providers.base import AIResponse, ProviderType, TokenUsage
from app.core.security import hash_password, create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.deps import get_calendar_client
from app.environments.google.calendar.schemas import CalendarEvent
from app.models.user import User
from app.services.ai_context_manager import ai_context_manager
from app.services.event_context_service import event_context_service
from app.services.recent_event_cache import recent_event_cache


SEOUL = ZoneInfo("Asia/Seoul")


# ---------------------------------------------------------------------------
# TEST DATABASE SETUP
# ---------------------------------------------------------------------------
# StaticPool keeps the same in-memory connection across all operations

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh tables for each test function."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def calendar() -> MagicMock:
    """
    Stand-in for GoogleCalendarClient.

    Every API method is an AsyncMock returning an empty/neutral value;
    tests set return_value or side_effect as needed.
    """
    client = MagicMock()
    client.list_events = AsyncMock(return_value=[])
    client.list_upcoming_events = AsyncMock(return_value=[])
    client.get_event = AsyncMock(return_value=None)
    client.create_event = AsyncMock()
    client.update_event = AsyncMock()
    client.delete_event = AsyncMock(return_value=True)
    client.validate_access = AsyncMock(return_value=True)
    return client


@pytest.fixture(scope="function")
def client(db: Session, calendar: MagicMock) -> Generator[TestClient, None, None]:
    """
    Test client wired to the test database and the calendar mock.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_calendar_client] = lambda: calendar

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# USER FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def test_user(db: Session) -> User:
    """
    A user in Seoul with no locale preference.

    Password: "testpassword"
    """
    user = User(
        id=uuid4(),
        email="test@example.com",
        hashed_password=hash_password("testpassword"),
        display_name="Test User",
        timezone="Asia/Seoul",
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user_token(test_user: User) -> str:
    return create_access_token(subject=str(test_user.id))


@pytest.fixture
def auth_headers(test_user_token: str) -> dict:
    """JWT plus the Google token header every /ai route needs."""
    return {
        "Authorization": f"Bearer {test_user_token}",
        "X-Google-Access-Token": "google-test-token",
    }


# ---------------------------------------------------------------------------
# IN-MEMORY STATE
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_session_stores():
    """Session stores and the monitor are module singletons; wipe them per test."""
    yield
    recent_event_cache.clear_all()
    ai_context_manager.clear_all()
    event_context_service.clear_all()
    ai_monitor.reset()


# ---------------------------------------------------------------------------
# FACTORIES
# ---------------------------------------------------------------------------

def make_event(
    event_id: str = "evt-1",
    summary: Optional[str] = "팀 회의",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    location: Optional[str] = None,
    all_day_date: Optional[str] = None,
    attendees: Optional[list] = None,
) -> CalendarEvent:
    """
    Build a CalendarEvent the way Google Calendar returns it.

    start/end are Seoul wall-clock datetimes; all_day_date makes an
    all-day event for that date instead.
    """
    body = {"id": event_id, "summary": summary}
    if all_day_date:
        day = datetime.fromisoformat(all_day_date).date()
        body["start"] = {"date": day.isoformat()}
        body["end"] = {"date": (day + timedelta(days=1)).isoformat()}
    else:
        start = start or datetime(2025, 1, 15, 14, 0)
        end = end or start + timedelta(hours=1)
        body["start"] = {"dateTime": start.replace(tzinfo=SEOUL).isoformat(), "timeZone": "Asia/Seoul"}
        body["end"] = {"dateTime": end.replace(tzinfo=SEOUL).isoformat(), "timeZone": "Asia/Seoul"}
    if location:
        body["location"] = location
    if attendees:
        body["attendees"] = [{"email": email} for email in attendees]
    return CalendarEvent.model_validate(body)


def make_ai_response(content: str = "", success: bool = True, error: Optional[str] = None) -> AIResponse:
    return AIResponse(
        content=content,
        provider=ProviderType.GEMINI,
        model="gemini-2.5-flash",
        usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        latency_ms=12.0,
        success=success,
        error=error,
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def ai_response():
    return make_ai_response
