"""Builders shared by the test modules."""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.activity import ActivityCreate
from app.schemas.user import UserCreate
from app.services.activity_service import ActivityService
from app.services.auth_service import AuthService
from app.services.user_service import UserService


def activity_data(**values) -> ActivityCreate:
    fields = {
        "title": "Box Breathing",
        "category": "Relaxation",
        "description": "Breathe in four counts, hold four, out four",
        "duration": 5,
        "difficulty": 1,
        "content": "Sit comfortably and follow the square.",
    }
    fields.update(values)
    return ActivityCreate(**fields)


async def add_activity(db: AsyncSession, **values) -> str:
    activity_id = await ActivityService.create_activity(db, activity_data(**values))
    await db.commit()
    return activity_id


async def add_user(
    db: AsyncSession,
    username: str = "first",
    password: str = "first-password",
    email: Optional[str] = None,
    roles: Optional[List[str]] = None,
) -> str:
    user_id = await UserService.create_user(
        db,
        UserCreate(username=username, email=email or f"{username}@example.com", password=password),
        roles=roles,
    )
    await db.commit()
    return user_id


def bearer(user_id: str, roles: Optional[List[str]] = None) -> dict:
    return {"Authorization": f"Bearer {AuthService.create_access_token(user_id, roles)}"}
