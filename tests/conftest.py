"""
Shared fixtures: a throwaway SQLite database per test, the app wired to it,
bearer-token helpers and an in-memory stand-in for Google Calendar.
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import appointly.models  # noqa: F401
from appointly.core.google_calendar import GoogleCalendarError, get_calendar_client_factory
from appointly.core.security import create_access_token
from appointly.db.base import Base
from appointly.db.session import get_db
from appointly.main import create_app
from appointly.models import (
    Appointment,
    AppointmentStatus,
    GoogleCalendarToken,
    Seller,
    UserProfile,
    UserRole,
)
from appointly.utils.timeutils import to_rfc3339


# Monday
BOOKING_DAY = datetime(2030, 1, 7, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: datetime = BOOKING_DAY) -> datetime:
    """UTC instant on the booking day."""
    return day.replace(hour=hour, minute=minute)


def auth_headers(user_id: uuid.UUID, email: Optional[str] = None) -> Dict[str, str]:
    claims = {"sub": str(user_id)}
    if email:
        claims["email"] = email
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


class FakeCalendar:
    """Records what the app asks Google Calendar to do."""

    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.failing_tokens = set()
        self.busy: List[Dict[str, str]] = []
        self.events: List[Dict[str, Any]] = []
        self.user_info: Dict[str, Any] = {"id": "google-user", "email": "someone@example.com"}
        # called before each event is created
        self.before_create: Optional[Callable[[], None]] = None

    def factory(self, access_token: str) -> "FakeCalendarClient":
        return FakeCalendarClient(self, access_token)


class FakeCalendarClient:

    def __init__(self, calendar: FakeCalendar, access_token: str):
        self.calendar = calendar
        self.access_token = access_token

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    def _check(self):
        if self.access_token in self.calendar.failing_tokens:
            raise GoogleCalendarError("Google Calendar API error: Invalid Credentials", 401)

    async def create_event(self, summary, start, end, attendees, description=None):
        self._check()
        if self.calendar.before_create:
            self.calendar.before_create()
        number = len(self.calendar.created) + 1
        self.calendar.created.append({
            "access_token": self.access_token,
            "summary": summary,
            "start": start,
            "end": end,
            "attendees": attendees,
            "description": description,
        })
        return {
            "id": f"evt-{number}",
            "summary": summary,
            "start": {"dateTime": to_rfc3339(start), "timeZone": "UTC"},
            "end": {"dateTime": to_rfc3339(end), "timeZone": "UTC"},
            "attendees": [{"email": email} for email in attendees],
            "meet_link": f"https://meet.google.com/fake-{number}",
        }

    async def list_events(self, time_min, time_max):
        self._check()
        return self.calendar.events

    async def freebusy(self, time_min, time_max, calendar_id="primary"):
        self._check()
        return self.calendar.busy

    async def get_user_info(self):
        self._check()
        return self.calendar.user_info


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'appointly.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_calendar():
    return FakeCalendar()


@pytest.fixture
def app_sessions():
    """Sessions handed to request handlers, in order."""
    return []


@pytest.fixture
async def client(session_factory, fake_calendar, app_sessions):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            app_sessions.append(session)
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_calendar_client_factory] = lambda: fake_calendar.factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db):
    async def _make_user(email: str, role: Optional[UserRole] = UserRole.BUYER, full_name: str = "") -> UserProfile:
        user = UserProfile(id=uuid.uuid4(), email=email, full_name=full_name, role=role)
        db.add(user)
        await db.commit()
        return user
    return _make_user


@pytest.fixture
def make_seller(db, make_user):
    async def _make_seller(
        email: str = "seller@example.com",
        full_name: str = "Sam Seller",
        business_name: str = "Sam's Studio",
        availability_settings: Optional[dict] = None,
        is_active: bool = True,
    ) -> SimpleNamespace:
        user = await make_user(email, UserRole.SELLER, full_name)
        seller = Seller(
            user_id=user.id,
            business_name=business_name,
            description="Portraits",
            location="Lisbon",
            is_active=is_active,
            availability_settings=availability_settings or {},
        )
        db.add(seller)
        await db.commit()
        return SimpleNamespace(user=user, seller=seller, headers=auth_headers(user.id, user.email))
    return _make_seller


@pytest.fixture
def store_token(db):
    async def _store_token(
        user: UserProfile,
        user_type: UserRole,
        access_token: Optional[str] = None,
        expires_in: timedelta = timedelta(hours=1),
    ) -> GoogleCalendarToken:
        token = GoogleCalendarToken(
            user_id=user.id,
            user_type=user_type,
            access_token=access_token or f"token-{user.email}",
            refresh_token="refresh",
            token_type="Bearer",
            expires_at=datetime.now(timezone.utc) + expires_in,
        )
        db.add(token)
        await db.commit()
        return token
    return _store_token


@pytest.fixture
def make_appointment(db):
    async def _make_appointment(
        buyer: UserProfile,
        seller: Seller,
        start: datetime,
        end: datetime,
        status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> Appointment:
        appointment = Appointment(
            buyer_id=buyer.id,
            seller_id=seller.id,
            title="Existing booking",
            start_time=start,
            end_time=end,
            status=status,
            buyer_email=buyer.email,
        )
        db.add(appointment)
        await db.commit()
        return appointment
    return _make_appointment


@pytest.fixture
async def buyer(make_user):
    user = await make_user("buyer@example.com", UserRole.BUYER, "Bea Buyer")
    return SimpleNamespace(user=user, headers=auth_headers(user.id, user.email))


@pytest.fixture
async def seller(make_seller, store_token):
    seller = await make_seller()
    await store_token(seller.user, UserRole.SELLER)
    return seller
