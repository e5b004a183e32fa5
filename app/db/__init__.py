"""
Database package: clean public API.

This makes `from app.db import get_db, Base, engine, etc.` work
and keeps imports consistent.
"""

from .session import (
    engine,
    AsyncSessionLocal,
    Base,
    get_db,
    init_db,
    close_db,
    configure_sqlite,
)

__all__ = [
    "engine",
    "AsyncSessionLocal",
    "Base",
    "get_db",
    "init_db",
    "close_db",
    "configure_sqlite",
]
