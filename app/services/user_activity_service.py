"""Per-user completion records and their reconciliation with the catalog."""

import logging
from typing import Optional

from sqlalchemy import and_, delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ActivityNotFoundError,
    AlreadyCompleteError,
    AlreadyNotCompleteError,
    UserNotFoundError,
)
from app.models.activity import Activity
from app.models.user import User
from app.models.user_activity import UserActivity
from app.schemas.activity import ActivityListResponse, ActivityQuery, ActivityResponse
from app.services.query_filter import (
    ACTIVITY_FIELDS,
    compile_activity_query,
    execute_paginated,
)

logger = logging.getLogger(__name__)


def _record_clause(user_id: str, activity_id: str):
    return and_(UserActivity.user_id == user_id, UserActivity.activity_id == activity_id)


def _to_response(record: UserActivity) -> ActivityResponse:
    return ActivityResponse(
        id=record.activity_id,
        created=record.created,
        title=record.title,
        category=record.category,
        description=record.description,
        duration=record.duration,
        difficulty=record.difficulty,
        content=record.content,
    )


class UserActivityService:
    """Completion records, one per (user, activity) pair.

    A record is a copy of the activity taken when the user completed it.
    The catalog calls the cascade helpers below whenever it changes so the
    copies never drift; ``reconcile`` repairs any drift that slipped through.
    """

    # ─── Completion ─────────────────────────────
    @staticmethod
    async def complete_activity(db: AsyncSession, user_id: str, activity_id: str) -> None:
        user = await db.execute(select(User.id).where(User.id == user_id))
        if user.scalar_one_or_none() is None:
            raise UserNotFoundError()

        result = await db.execute(
            select(Activity)
            .where(Activity.id == activity_id)
            .execution_options(populate_existing=True)
        )
        activity = result.scalar_one_or_none()
        if activity is None:
            raise ActivityNotFoundError()

        record = UserActivity(
            user_id=user_id,
            activity_id=activity.id,
            created=activity.created,
            **{field: getattr(activity, field) for field in ACTIVITY_FIELDS},
        )
        try:
            async with db.begin_nested():
                db.add(record)
        except IntegrityError as exc:
            # The only unique key on the table is (user_id, activity_id)
            raise AlreadyCompleteError() from exc

        logger.info(f"User {user_id} completed activity {activity_id}")

    @staticmethod
    async def uncomplete_activity(db: AsyncSession, user_id: str, activity_id: str) -> None:
        result = await db.execute(
            delete(UserActivity)
            .where(_record_clause(user_id, activity_id))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AlreadyNotCompleteError()
        logger.info(f"User {user_id} uncompleted activity {activity_id}")

    # ─── Reads ──────────────────────────────────
    @staticmethod
    async def get_user_activity(
        db: AsyncSession, user_id: str, activity_id: str
    ) -> Optional[ActivityResponse]:
        """The user's copy of the activity, or None when it is not completed."""
        result = await db.execute(
            select(UserActivity)
            .where(_record_clause(user_id, activity_id))
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return _to_response(record) if record else None

    @staticmethod
    async def is_activity_complete(db: AsyncSession, user_id: str, activity_id: str) -> bool:
        result = await db.execute(select(exists().where(_record_clause(user_id, activity_id))))
        return bool(result.scalar())

    @staticmethod
    async def get_completed_activities(
        db: AsyncSession,
        user_id: str,
        query: Optional[ActivityQuery] = None,
    ) -> ActivityListResponse:
        """Filter, search, sort and paginate the activities a user has completed."""
        compiled = compile_activity_query(
            UserActivity,
            query,
            scope=[UserActivity.user_id == user_id],
            id_column=UserActivity.activity_id,
        )
        total, rows = await execute_paginated(db, compiled.statement)
        return ActivityListResponse(
            page=compiled.page,
            page_size=compiled.page_size,
            total=total,
            activities=[ActivityResponse.model_validate(dict(row)) for row in rows],
        )

    # ─── Catalog cascades ───────────────────────
    @staticmethod
    async def sync_activity(db: AsyncSession, activity_id: str, values: dict) -> int:
        """Copy changed activity fields into every record of that activity."""
        values = {key: value for key, value in values.items() if key in ACTIVITY_FIELDS}
        if not values:
            return 0
        result = await db.execute(
            update(UserActivity)
            .where(UserActivity.activity_id == activity_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def remove_for_activity(db: AsyncSession, activity_id: str) -> int:
        result = await db.execute(
            delete(UserActivity)
            .where(UserActivity.activity_id == activity_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def remove_for_category(db: AsyncSession, category: str) -> int:
        result = await db.execute(
            delete(UserActivity)
            .where(func.lower(UserActivity.category) == category.lower())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def rename_category(db: AsyncSession, old_category: str, new_category: str) -> int:
        result = await db.execute(
            update(UserActivity)
            .where(func.lower(UserActivity.category) == old_category.lower())
            .values(category=new_category)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def remove_for_user(db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            delete(UserActivity)
            .where(UserActivity.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ─── Repair ─────────────────────────────────
    @staticmethod
    async def reconcile(db: AsyncSession) -> dict:
        """Bring every record back in line with the catalog and the user table.

        Records whose activity or user no longer exists are deleted and the
        rest are re-copied from their activity. Safe to run repeatedly.
        """
        orphaned = await db.execute(
            delete(UserActivity)
            .where(
                UserActivity.activity_id.not_in(select(Activity.id))
                | UserActivity.user_id.not_in(select(User.id))
            )
            .execution_options(synchronize_session=False)
        )

        def source(field: str):
            return (
                select(getattr(Activity, field))
                .where(Activity.id == UserActivity.activity_id)
                .scalar_subquery()
            )

        refreshed = await db.execute(
            update(UserActivity)
            .values(
                created=source("created"),
                **{field: source(field) for field in ACTIVITY_FIELDS},
            )
            .execution_options(synchronize_session=False)
        )

        summary = {"removed": orphaned.rowcount, "refreshed": refreshed.rowcount}
        logger.info(f"Reconciled completion records: {summary}")
        return summary
