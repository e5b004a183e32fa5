"""Database models."""

from app.models.user import User
from app.models.activity import Activity
from app.models.user_activity import UserActivity

__all__ = [
    "User",
    "Activity",
    "UserActivity",
]
