"""Activity model for the wellness activity catalog."""

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Union

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base

# Ordered labels, index + 1 is the stored difficulty value
DIFFICULTY_LABELS = ("easy", "medium", "difficult", "challenging", "extreme")
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = len(DIFFICULTY_LABELS)

_last_created = datetime.min.replace(tzinfo=timezone.utc)
_created_lock = threading.Lock()


def next_created() -> datetime:
    """Current UTC time, nudged past the previous value so activities created
    in the same clock tick still sort in insertion order."""
    global _last_created
    with _created_lock:
        now = datetime.now(timezone.utc)
        if now <= _last_created:
            now = _last_created + timedelta(microseconds=1)
        _last_created = now
        return now


def get_difficulty_value(value: Union[int, str]) -> int:
    """Convert a difficulty label or integer (or integer string) to its 1-5 value."""
    if isinstance(value, bool):
        raise ValueError("Value is not a difficulty")
    if isinstance(value, str):
        label = value.strip().lower()
        if label in DIFFICULTY_LABELS:
            return DIFFICULTY_LABELS.index(label) + 1
        if not label.isdigit():
            raise ValueError("Value is not a difficulty")
        value = int(label)
    if not isinstance(value, int) or not MIN_DIFFICULTY <= value <= MAX_DIFFICULTY:
        raise ValueError("Value is not a difficulty")
    return value


class Activity(Base):
    """A catalog entry. Title is unique ignoring case; category is a plain label."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    title: Mapped[str] = mapped_column(String(255))
    category: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    # seconds
    duration: Mapped[int] = mapped_column(Integer)
    difficulty: Mapped[int] = mapped_column(Integer)
    content: Mapped[str] = mapped_column(Text)

    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=next_created,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, title={self.title}, category={self.category})>"


# Case-insensitive indexes
Index("uq_activities_title", func.lower(Activity.title), unique=True)
Index("ix_activities_category", func.lower(Activity.category))
