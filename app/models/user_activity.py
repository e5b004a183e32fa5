"""Completion record: a user's denormalized copy of a completed activity.

The existence of a row means the activity is completed for that user. The
activity fields are copied at completion time so per-user listings never
join against the catalog; catalog mutations reconcile these copies.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class UserActivity(Base):
    __tablename__ = "user_activities"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_id", name="uq_user_activities_user_activity"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id: Mapped[str] = mapped_column(String(36), index=True)
    activity_id: Mapped[str] = mapped_column(String(36), index=True)

    # Snapshot of the source activity
    title: Mapped[str] = mapped_column(String(255))
    category: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    duration: Mapped[int] = mapped_column(Integer)
    difficulty: Mapped[int] = mapped_column(Integer)
    content: Mapped[str] = mapped_column(Text)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<UserActivity(user_id={self.user_id}, activity_id={self.activity_id})>"


Index("ix_user_activities_category", func.lower(UserActivity.category))
