"""Domain error kinds raised by the service layer.

Services raise these for predictable failures (missing records, uniqueness
collisions, bad credentials). The HTTP layer maps each family to a status
code in ``main.py``; anything that is not an ``AppError`` is treated as an
internal error by the global exception middleware.
"""

from typing import Optional


class AppError(Exception):
    """Base class for all domain errors."""

    message = "Application error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


# ─── Not found ──────────────────────────────

class NotFoundError(AppError):
    message = "Not found"


class ActivityNotFoundError(NotFoundError):
    message = "Activity not found"


class CategoryNotFoundError(NotFoundError):
    message = "Category not found"


class UserNotFoundError(NotFoundError):
    message = "User not found"


# ─── Conflicts ──────────────────────────────

class ConflictError(AppError):
    message = "Conflict"


class TitleConflictError(ConflictError):
    message = "An activity with that title already exists"


class UsernameConflictError(ConflictError):
    message = "Username in use"


class EmailConflictError(ConflictError):
    message = "Email in use"


class AlreadyCompleteError(ConflictError):
    message = "Activity already completed"


class AlreadyNotCompleteError(ConflictError):
    message = "Activity already uncompleted"


# ─── Auth ───────────────────────────────────

class UnauthorizedError(AppError):
    message = "Not Authorized"


class InvalidTokenError(UnauthorizedError):
    message = "Invalid or expired token"


class ForbiddenError(AppError):
    message = "Forbidden"


# ─── Internal ───────────────────────────────

class InternalError(AppError):
    """An invariant of the store was violated."""

    message = "Internal server error"
