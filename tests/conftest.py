"""Shared test fixtures."""

import os

# Settings are read once at import time, so configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SEED_DEMO_DATA", "false")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db.session import Base, configure_sqlite, get_db
from main import app


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = configure_sqlite(
        create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """Database file with a real connection pool, for tests that need concurrent sessions."""
    engine = configure_sqlite(
        create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'koans.db'}")
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, with request sessions on the test database."""

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


@pytest.fixture
def sample_activities():
    """Five activities across three categories."""
    return [
        {"title": "Box Breathing", "category": "Relaxation", "duration": 5, "difficulty": 1},
        {"title": "Body Scan", "category": "Relaxation", "duration": 15, "difficulty": 2},
        {"title": "Gratitude Letter", "category": "Self-Esteem", "duration": 20, "difficulty": 3},
        {"title": "Mirror Affirmations", "category": "Self-Esteem", "duration": 3, "difficulty": 2},
        {"title": "Pomodoro Sprint", "category": "Productivity", "duration": 25, "difficulty": 4},
    ]
