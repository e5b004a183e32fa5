"""Pydantic schemas for API request/response validation."""

from app.schemas.activity import (
    ActivityQuery,
    ActivityCreate,
    ActivityUpdate,
    ActivityResponse,
    ActivityListResponse,
    CategoryListResponse,
)
from app.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserIdentity,
    TokenResponse,
)

__all__ = [
    "ActivityQuery",
    "ActivityCreate",
    "ActivityUpdate",
    "ActivityResponse",
    "ActivityListResponse",
    "CategoryListResponse",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserIdentity",
    "TokenResponse",
]
