"""
LinguaCards - Test Configuration
Pytest fixtures and configuration for testing
"""
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from linguacards.api.deps import get_session_registry
from linguacards.core.database import Base, get_db
from linguacards.main import app
from linguacards.models import Card, User
from linguacards.review.registry import SessionRegistry
from linguacards.review.scheduling import Sm2Engine
from linguacards.services.repository import SqlReviewRepository
from linguacards.services.review import ReviewService


# Test database URL (in-memory SQLite shared by every connection of the pool)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Reference instant: 12:00 UTC is 15:00 in Moscow
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def registry() -> SessionRegistry:
    """A session registry private to the test."""
    return SessionRegistry(idle_timeout=timedelta(minutes=10))


@pytest.fixture
def repository(db_session: AsyncSession) -> SqlReviewRepository:
    return SqlReviewRepository(db_session)


@pytest.fixture
def review_service(repository: SqlReviewRepository, registry: SessionRegistry) -> ReviewService:
    return ReviewService(repository, registry=registry, engine=Sm2Engine())


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, registry: SessionRegistry) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session and registry overrides."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_registry] = lambda: registry

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory persisting a learner."""

    async def _make_user(user_id: int = 1001, **overrides: Any) -> User:
        data = {
            "id": user_id,
            "daily_goal": 20,
            "today_reviewed": 0,
            "review_mode": "reveal",
            "reminder_times": ["09:00", "14:00", "20:00"],
            "timezone": "Europe/Moscow",
            "is_active": True,
        }
        data.update(overrides)
        user = User(**data)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_card(db_session: AsyncSession):
    """Factory persisting a card, due one hour before NOW unless told otherwise."""

    async def _make_card(user_id: int = 1001, **overrides: Any) -> Card:
        data = {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "front": "кошка",
            "back": "cat",
            "repetitions": 0,
            "ease_factor": 2.5,
            "interval_days": 0,
            "due_at": NOW - timedelta(hours=1),
            "is_learned": False,
        }
        data.update(overrides)
        card = Card(**data)
        db_session.add(card)
        await db_session.commit()
        return card

    return _make_card
