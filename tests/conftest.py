"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own database: a SQLite file under tmp_path by default,
or TEST_DATABASE_URL (e.g. a PostgreSQL test database) when set. Tables are
created before and dropped after every test.
"""

import os

# Settings are read once at import time; keep tests off Redis and PostgreSQL
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from eventpass.main import app
from eventpass.db.base import Base
from eventpass.db.session import get_db
from eventpass.core.security import create_access_token
from eventpass.models.event import Event
from eventpass.models.ticket import Ticket
from eventpass.schemas.ticket import TicketCreate
from eventpass.services.ticket_service import issue_ticket

ORGANIZER_ID = "organizer-1"
OTHER_ORGANIZER_ID = "organizer-2"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'eventpass_test.db'}"
    engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a committing session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_headers() -> dict:
    """Authorization headers for the organizer who owns test_event."""
    return {"Authorization": f"Bearer {create_access_token(ORGANIZER_ID)}"}


@pytest_asyncio.fixture
async def other_headers() -> dict:
    """Authorization headers for an organizer who owns nothing."""
    return {"Authorization": f"Bearer {create_access_token(OTHER_ORGANIZER_ID)}"}


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """Three-day event offering Lunch, WiFi and Dinner."""
    now = datetime.now(timezone.utc)
    event = Event(
        organizer_id=ORGANIZER_ID,
        title="Tech Summit",
        description="A test event",
        company_name="Acme",
        start_date=now + timedelta(days=1),
        end_date=now + timedelta(days=3),
        location="Test Venue",
        max_attendees=100,
        available_benefits=["Lunch", "WiFi", "Dinner"],
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def other_event(db_session: AsyncSession) -> Event:
    now = datetime.now(timezone.utc)
    event = Event(
        organizer_id=ORGANIZER_ID,
        title="Design Meetup",
        start_date=now + timedelta(days=10),
        end_date=now + timedelta(days=10, hours=4),
        available_benefits=["Lunch"],
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_ticket(db_session: AsyncSession, test_event: Event) -> Ticket:
    """Ticket holding Lunch and WiFi, nothing redeemed yet."""
    ticket = await issue_ticket(
        db_session,
        test_event,
        TicketCreate(
            holder_name="Ada Lovelace",
            holder_email="ada@example.com",
            selected_benefits=["Lunch", "WiFi"],
        ),
    )
    await db_session.commit()
    return ticket


@pytest_asyncio.fixture
async def three_benefit_ticket(db_session: AsyncSession, test_event: Event) -> Ticket:
    ticket = await issue_ticket(
        db_session,
        test_event,
        TicketCreate(
            holder_name="Grace Hopper",
            holder_email="grace@example.com",
            role="speaker",
            selected_benefits=["Lunch", "WiFi", "Dinner"],
        ),
    )
    await db_session.commit()
    return ticket
