"""
Pytest fixtures for the test database, HTTP client and authenticated users.

Each test gets a fresh SQLite file database. Requests run in their own
session, like production, because the registration coordinator commits and
rolls back on its own; fixtures and assertions use `db_session`.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./campus_events_test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("COMPLETION_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("REGISTRATION_LOCK", "local")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from campus_events.main import app
from campus_events.db.base import Base
from campus_events.db.session import get_db
from campus_events.core.security import create_access_token, hash_password, new_token_id
from campus_events.models.club import Club
from campus_events.models.event import Event, EventStatus
from campus_events.models.user import User, UserRole

PASSWORD = "testpassword123"


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Per-test SQLite database; NullPool gives every session its own connection."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests use the test database."""

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
async def make_user(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.STUDENT, email: str = None, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@campus.edu",
            name=kwargs.pop("name", f"User {counter['n']}"),
            reg_no=kwargs.pop("reg_no", f"REG{counter['n']:04d}"),
            hashed_password=hash_password(PASSWORD),
            role=role.value,
            **kwargs,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def make_headers(db_session: AsyncSession):
    """Sign a user in directly: store a fresh jti and issue a matching token."""

    async def _make_headers(user: User) -> dict:
        user.token_jti = new_token_id()
        await db_session.commit()
        token = create_access_token(data={"sub": str(user.id), "jti": user.token_jti})
        return {"Authorization": f"Bearer {token}"}

    return _make_headers


@pytest_asyncio.fixture
async def student(make_user) -> User:
    return await make_user(email="student@campus.edu", name="Student")


@pytest_asyncio.fixture
async def officer(make_user) -> User:
    return await make_user(email="president@campus.edu", name="Club President")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(UserRole.ADMIN, email="admin@campus.edu", name="Admin", reg_no=None)


@pytest_asyncio.fixture
async def student_headers(make_headers, student) -> dict:
    return await make_headers(student)


@pytest_asyncio.fixture
async def officer_headers(make_headers, officer) -> dict:
    return await make_headers(officer)


@pytest_asyncio.fixture
async def admin_headers(make_headers, admin) -> dict:
    return await make_headers(admin)


@pytest_asyncio.fixture
async def club(db_session: AsyncSession, officer: User) -> Club:
    club = Club(name="Robotics Club", type="technical", president_id=officer.id)
    db_session.add(club)
    await db_session.commit()
    await db_session.refresh(club)
    return club


@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession, club: Club, officer: User):
    """Insert an event directly, bypassing the creation-time date checks."""

    async def _make_event(
        status: EventStatus = EventStatus.APPROVED,
        max_participants=2,
        start_in: timedelta = timedelta(days=7),
        deadline_in: timedelta = timedelta(days=5),
        waitlist_enabled: bool = False,
        **kwargs,
    ) -> Event:
        now = datetime.now(timezone.utc)
        event = Event(
            name=kwargs.pop("name", "Robot Workshop"),
            type=kwargs.pop("type", "workshop"),
            venue=kwargs.pop("venue", "Lab 3"),
            start_time=now + start_in,
            registration_deadline=(now + deadline_in) if deadline_in is not None else None,
            max_participants=max_participants,
            current_participants=0,
            waitlist_enabled=waitlist_enabled,
            status=status.value,
            club_id=club.id,
            created_by=officer.id,
            **kwargs,
        )
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make_event


@pytest_asyncio.fixture
async def approved_event(make_event) -> Event:
    """Approved, two seats, deadline in five days."""
    return await make_event()
