"""Helpers for interpreting storage integrity errors."""

from sqlalchemy.exc import IntegrityError


def violates_constraint(exc: IntegrityError, name: str) -> bool:
    """Check whether ``exc`` was raised by the unique index called ``name``.

    SQLite reports expression indexes as ``index 'name'`` and PostgreSQL as
    ``constraint "name"``; both contain the bare index name.
    """
    return name in str(exc.orig)
