"""
Pytest fixtures for the test database, slot lock, client and catalog data.

Each test gets a fresh SQLite file (aiosqlite) under tmp_path, so the suite
runs without a database server. Set TEST_DATABASE_URL to run the same tests
against Postgres.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ADMISSION_LOCK_BACKEND", "local")

from datetime import time, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from studio_booking.api.deps import session_factory_dep, slot_lock_dep
from studio_booking.db.base import Base
from studio_booking.db.session import get_db
from studio_booking.main import app
from studio_booking.models import ClassSchedule, Member, StudioClass
from studio_booking.services.interfaces.local_slot_lock import LocalSlotLock
from studio_booking.services.slot_key import SlotKey

from helpers import session_date

MEMBER_IDS = ["alice", "bob", "carol", "dave", "erin", "frank", "grace", "heidi"]


@pytest_asyncio.fixture
async def engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}"
    test_engine = create_async_engine(url, echo=False)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def slot_lock() -> LocalSlotLock:
    return LocalSlotLock(timeout_seconds=5.0)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def members(db_session: AsyncSession) -> list[Member]:
    rows = [Member(id=member_id, email=f"{member_id}@example.com", full_name=member_id.title()) for member_id in MEMBER_IDS]
    rows.append(Member(id="inactive", email="inactive@example.com", is_active=False))
    db_session.add_all(rows)
    await db_session.commit()
    return rows


@pytest_asyncio.fixture
async def yoga_class(db_session: AsyncSession) -> StudioClass:
    """Morning Vinyasa: capacity 2, every Monday at 09:00, plus a one-off Saturday 10:30."""
    monday = session_date()
    studio_class = StudioClass(id="vinyasa", title="Morning Vinyasa Flow", capacity=2, duration_minutes=60)
    db_session.add(studio_class)
    db_session.add_all([
        ClassSchedule(class_id="vinyasa", starts_on=monday, start_time=time(9, 0), is_recurring=True),
        ClassSchedule(
            class_id="vinyasa",
            starts_on=monday + timedelta(days=5),
            start_time=time(10, 30),
            is_recurring=False,
        ),
    ])
    await db_session.commit()
    return studio_class


@pytest_asyncio.fixture
async def unlimited_class(db_session: AsyncSession) -> StudioClass:
    """A class saved without a capacity."""
    studio_class = StudioClass(id="yin", title="Gentle Yin Yoga", capacity=None)
    db_session.add(studio_class)
    db_session.add(ClassSchedule(class_id="yin", starts_on=session_date(), start_time=time(18, 0)))
    await db_session.commit()
    return studio_class


@pytest.fixture
def slot(members, yoga_class) -> SlotKey:
    return SlotKey("vinyasa", session_date(), time(9, 0))


@pytest_asyncio.fixture
async def client(session_factory, slot_lock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database and a fresh in-process slot lock."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[session_factory_dep] = lambda: session_factory
    app.dependency_overrides[slot_lock_dep] = lambda: slot_lock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
