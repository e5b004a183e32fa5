"""Services for business logic."""

from app.services.activity_service import ActivityService
from app.services.user_activity_service import UserActivityService
from app.services.user_service import UserService
from app.services.auth_service import AuthService

__all__ = ["ActivityService", "UserActivityService", "UserService", "AuthService"]
