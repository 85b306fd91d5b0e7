"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh schema on its own engine. SQLite in memory by default;
point TEST_DATABASE_URL at a Postgres database to run against the real thing.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from venue_calendar.main import app
from venue_calendar.api.deps import get_now
from venue_calendar.core.security import create_access_token
from venue_calendar.db.base import Base
from venue_calendar.db.session import get_db
from venue_calendar.models.band import Band
from venue_calendar.models.event import Event
from venue_calendar.schemas.band import BandCreate
from venue_calendar.schemas.event import EventCreate
from venue_calendar.services import band_service, event_service

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

ORG_ID = "org-riverside"
OTHER_ORG_ID = "org-harbour"

# Monday. The first Wednesday after it is 2024-01-03.
FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

        @sa_event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            # ON DELETE CASCADE is off in SQLite unless asked for
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_async_engine(TEST_DATABASE_URL, echo=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def org_id() -> str:
    return ORG_ID


@pytest.fixture
def other_org_id() -> str:
    return OTHER_ORG_ID


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the test session and a pinned clock."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: FIXED_NOW

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Bearer token for a member of ORG_ID only."""
    token = create_access_token(data={"sub": "user-1", "orgs": [ORG_ID]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def multi_org_headers() -> dict:
    """Bearer token for a member of both test orgs."""
    token = create_access_token(data={"sub": "user-2", "orgs": [ORG_ID, OTHER_ORG_ID]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def events_url() -> str:
    return f"/api/v1/orgs/{ORG_ID}/events"


@pytest.fixture
def bands_url() -> str:
    return f"/api/v1/orgs/{ORG_ID}/bands"


@pytest_asyncio.fixture
async def weekly_event(db_session: AsyncSession) -> Event:
    """Weekly template playing every Wednesday, publicly visible."""
    event = await event_service.create_event(
        db_session,
        ORG_ID,
        EventCreate(title="Jazz Wednesdays", is_weekly=True, day_of_week=3),
        FIXED_NOW,
    )
    await db_session.commit()
    return event


@pytest_asyncio.fixture
async def one_off_event(db_session: AsyncSession) -> Event:
    event = await event_service.create_event(
        db_session,
        ORG_ID,
        EventCreate(
            title="New Year Gala",
            starts_at=datetime(2024, 1, 20, 20, 0, tzinfo=timezone.utc),
            ends_at=datetime(2024, 1, 20, 23, 30, tzinfo=timezone.utc),
        ),
        FIXED_NOW,
    )
    await db_session.commit()
    return event


@pytest_asyncio.fixture
async def bands(db_session: AsyncSession) -> list[Band]:
    """Three bands owned by ORG_ID."""
    created = []
    for name in ("The Quiet Storm", "Brass Tacks", "Low Tide Trio"):
        created.append(await band_service.create_band(db_session, ORG_ID, BandCreate(name=name)))
    await db_session.commit()
    return created


@pytest_asyncio.fixture
async def foreign_band(db_session: AsyncSession) -> Band:
    """A band owned by OTHER_ORG_ID."""
    band = await band_service.create_band(db_session, OTHER_ORG_ID, BandCreate(name="Harbour Lights"))
    await db_session.commit()
    return band
