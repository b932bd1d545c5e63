import os
import sys
from datetime import datetime, UTC, timedelta
from typing import AsyncGenerator, Awaitable, Callable, Dict

import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Add the app directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
os.environ.setdefault("TESTING", "True")

from app.main import app
from app.models import Base, User, Event, UserRole
from app.db.database import create_engine, create_session_factory, get_db, get_session_factory
from app.core.logging import setup_test_logging
from app.core.security import create_token_pair, get_password_hash

# Use a separate file-backed test database so concurrent sessions get their own connections
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

setup_test_logging()

@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema for every test."""
    engine = create_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)

@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Get async database session for tests."""
    async with session_factory() as session:
        yield session

@pytest_asyncio.fixture
async def test_app(session_factory) -> AsyncGenerator[FastAPI, None]:
    """The application wired to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield app
    app.dependency_overrides.clear()

@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        follow_redirects=True
    ) as ac:
        yield ac

async def _create_user(session: AsyncSession, name: str, email: str, role: UserRole) -> User:
    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash("testpass123"),
        role=role,
        is_active=True
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user

def bearer(user: User) -> Dict[str, str]:
    access_token, _ = create_token_pair(user)
    return {"Authorization": f"Bearer {access_token}"}

@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "Admin User", "admin@example.com", UserRole.ADMIN)

@pytest_asyncio.fixture
async def organizer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "Olivia Organizer", "organizer@example.com", UserRole.ORGANIZER)

@pytest_asyncio.fixture
async def other_organizer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "Oscar Organizer", "oscar@example.com", UserRole.ORGANIZER)

@pytest_asyncio.fixture
async def guest(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "Gary Guest", "guest@example.com", UserRole.GUEST)

@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> Dict[str, str]:
    return bearer(admin_user)

@pytest_asyncio.fixture
async def organizer_headers(organizer: User) -> Dict[str, str]:
    return bearer(organizer)

@pytest_asyncio.fixture
async def other_organizer_headers(other_organizer: User) -> Dict[str, str]:
    return bearer(other_organizer)

@pytest_asyncio.fixture
async def guest_headers(guest: User) -> Dict[str, str]:
    return bearer(guest)

def event_payload(**overrides) -> Dict:
    start = datetime.now(UTC) + timedelta(days=1)
    data = {
        "title": "Test Event",
        "description": "Test Description",
        "location": "Test Location",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=2)).isoformat(),
        "capacity": 10
    }
    data.update(overrides)
    return data

@pytest_asyncio.fixture
async def create_event(client: AsyncClient, organizer_headers) -> Callable[..., Awaitable[Dict]]:
    """Factory creating events through the API as the organizer."""
    async def _create(headers: Dict[str, str] | None = None, **overrides) -> Dict:
        response = await client.post(
            "/api/v1/events/",
            json=event_payload(**overrides),
            headers=headers or organizer_headers
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create

@pytest_asyncio.fixture
async def stored_event(session_factory) -> Callable[..., Awaitable[Event]]:
    """Factory inserting an event directly, bypassing the API."""
    async def _store(capacity: int = 10, attendee_count: int = 0, organizer_id: int = 1) -> Event:
        async with session_factory() as session:
            event = Event(
                title="Stored Event",
                start_time=datetime.now(UTC) + timedelta(days=1),
                capacity=capacity,
                attendee_count=attendee_count,
                organizer_id=organizer_id,
                organizer="Olivia Organizer"
            )
            session.add(event)
            await session.commit()
            return event
    return _store

def attendee_payload(email: str = "sam@example.com", **overrides) -> Dict:
    data = {"name": "Sam Lee", "email": email, "phone": "+1 555 0100"}
    data.update(overrides)
    return data
