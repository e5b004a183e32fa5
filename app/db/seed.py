"""Demo data: a few known users and a catalog of generated activities."""

import logging
import random
import uuid
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import MAX_DIFFICULTY, MIN_DIFFICULTY, Activity
from app.schemas.activity import ActivityCreate
from app.schemas.user import UserByUsername, UserCreate
from app.services.activity_service import ActivityService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"username": "admin", "password": "admin", "email": "admin@koans.example.com", "roles": ["admin"]},
    {"username": "first", "password": "first", "email": "first@example.com", "roles": []},
    {"username": "second", "password": "second", "email": "second@example.com", "roles": []},
]

CATEGORIES = [
    "Relaxation",
    "Self-Esteem",
    "Productivity",
    "Physical Health",
    "Social Connection",
]

WORDS = (
    "lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua enim ad minim veniam quis nostrud "
    "exercitation ullamco laboris nisi aliquip ex ea commodo consequat duis aute irure "
    "in reprehenderit voluptate velit esse cillum fugiat nulla pariatur excepteur sint "
    "occaecat cupidatat non proident sunt culpa qui officia deserunt mollit anim id est"
).split()


def _words(minimum: int, maximum: int) -> str:
    return " ".join(random.choices(WORDS, k=random.randint(minimum, maximum)))


def _sentence() -> str:
    return _words(6, 14).capitalize() + "."


def _paragraphs(minimum: int = 1, maximum: int = 3) -> str:
    return "\n\n".join(
        " ".join(_sentence() for _ in range(random.randint(3, 6)))
        for _ in range(random.randint(minimum, maximum))
    )


def generate_activity(**values) -> ActivityCreate:
    """Random activity; any field can be pinned through ``values``."""
    fields = {
        "title": f"{_words(1, 3).title()} ({uuid.uuid4().hex[:8]})",
        "category": random.choice(CATEGORIES),
        "description": _words(5, 20),
        "duration": random.randint(1, 20),
        "difficulty": random.randint(MIN_DIFFICULTY, MAX_DIFFICULTY),
        "content": _paragraphs(),
    }
    fields.update(values)
    return ActivityCreate(**fields)


async def create_users(db: AsyncSession) -> List[str]:
    """Create each demo user that does not exist yet; returns the created ids."""
    created = []
    for user in DEMO_USERS:
        if await UserService.get_user(db, UserByUsername(username=user["username"])):
            continue
        user_id = await UserService.create_user(
            db,
            UserCreate(username=user["username"], email=user["email"], password=user["password"]),
            roles=user["roles"],
        )
        created.append(user_id)
    return created


async def create_activities(db: AsyncSession, count: int) -> int:
    """Top the catalog up to ``count`` activities; returns how many were added."""
    result = await db.execute(select(func.count()).select_from(Activity))
    missing = max(0, count - result.scalar_one())
    for _ in range(missing):
        await ActivityService.create_activity(db, generate_activity())
    return missing


async def populate_database(db: AsyncSession, activity_count: int) -> None:
    users = await create_users(db)
    activities = await create_activities(db, activity_count)
    logger.info(f"Seeded {len(users)} users and {activities} activities")
