"""Async SQLAlchemy engine and session management."""

import logging
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": 20, "max_overflow": 10, "pool_pre_ping": True}


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def configure_sqlite(engine: AsyncEngine) -> AsyncEngine:
    """Make an SQLite engine behave like the server databases we rely on.

    - The driver's implicit transaction handling is replaced by an explicit
      ``BEGIN IMMEDIATE`` so savepoints nest inside the request transaction
      and concurrent writers queue up instead of failing with "locked".
    - ``lower()`` folds every Unicode letter, not only ASCII, so the
      case-insensitive unique indexes and category matching agree with
      Python's ``str.lower``.
    """
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = configure_sqlite(
    create_async_engine(
        settings.database_url,
        echo=False,
        **_engine_options(settings.database_url),
    )
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for one request; commit on success, roll back on error.

    Every store operation performed while handling the request, including
    cache reconciliation cascades, shares this single transaction.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables and indexes that do not exist yet."""
    # Register models on Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
