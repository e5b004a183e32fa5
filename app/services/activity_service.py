"""Activity catalog service."""

import logging
from typing import Literal, Optional, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ActivityNotFoundError,
    CategoryNotFoundError,
    InternalError,
    TitleConflictError,
)
from app.db.errors import violates_constraint
from app.models.activity import Activity
from app.schemas.activity import (
    ActivityCreate,
    ActivityListResponse,
    ActivityQuery,
    ActivityResponse,
    ActivityUpdate,
    CategoryListResponse,
    CategoryResponse,
)
from app.services.query_filter import (
    compile_activity_query,
    execute_paginated,
    page_window,
    paginate,
)
from app.services.user_activity_service import UserActivityService

logger = logging.getLogger(__name__)

CATEGORY_PAGE_SIZE = 10
TITLE_INDEX = "uq_activities_title"


def _raise_title_conflict(exc: IntegrityError) -> None:
    if violates_constraint(exc, TITLE_INDEX):
        raise TitleConflictError() from exc
    raise exc


class ActivityService:
    """Create, read, update and delete catalog activities and categories.

    Mutations that touch fields copied into completion records reconcile
    those copies in the same transaction.
    """

    @staticmethod
    async def create_activity(db: AsyncSession, activity_info: ActivityCreate) -> str:
        """Insert an activity; returns its id."""
        # Be explicit about which fields are copied
        activity = Activity(
            title=activity_info.title,
            category=activity_info.category,
            description=activity_info.description,
            duration=activity_info.duration,
            difficulty=activity_info.difficulty,
            content=activity_info.content,
        )
        try:
            # Savepoint so a conflict only undoes this insert
            async with db.begin_nested():
                db.add(activity)
        except IntegrityError as exc:
            logger.info(f"Title conflict creating activity '{activity_info.title}'")
            _raise_title_conflict(exc)

        logger.info(f"Created activity {activity.id} ({activity.title})")
        return activity.id

    @staticmethod
    async def get_activity(db: AsyncSession, activity_id: str) -> ActivityResponse:
        result = await db.execute(
            select(Activity)
            .where(Activity.id == activity_id)
            .execution_options(populate_existing=True)
        )
        activity = result.scalar_one_or_none()
        if activity is None:
            raise ActivityNotFoundError()
        return ActivityResponse.model_validate(activity)

    @staticmethod
    async def exists(db: AsyncSession, activity_id: str) -> bool:
        result = await db.execute(select(Activity.id).where(Activity.id == activity_id))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def get_activities(
        db: AsyncSession,
        query: Optional[ActivityQuery] = None,
    ) -> ActivityListResponse:
        """Filter, search, sort and paginate the catalog."""
        compiled = compile_activity_query(Activity, query)
        total, rows = await execute_paginated(db, compiled.statement)
        return ActivityListResponse(
            page=compiled.page,
            page_size=compiled.page_size,
            total=total,
            activities=[ActivityResponse.model_validate(dict(row)) for row in rows],
        )

    @staticmethod
    async def get_categories(
        db: AsyncSession,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        order: Union[Literal["asc", "desc", "ascending", "descending"], int] = "asc",
    ) -> CategoryListResponse:
        """Group activities by category (ignoring case) with a count per group."""
        page, page_size = page_window(page, page_size, CATEGORY_PAGE_SIZE)
        grouped = (
            select(
                func.min(Activity.category).label("name"),
                func.count().label("count"),
            )
            .group_by(func.lower(Activity.category))
            .cte("grouped")
        )
        ascending = order in ("asc", "ascending", 1)
        order_by = [grouped.c.name.asc() if ascending else grouped.c.name.desc()]

        total, rows = await execute_paginated(db, paginate(grouped, order_by, page, page_size))
        return CategoryListResponse(
            page=page,
            page_size=page_size,
            total=total,
            categories=[CategoryResponse(name=row["name"], count=row["count"]) for row in rows],
        )

    @staticmethod
    async def update_activity(
        db: AsyncSession,
        activity_id: str,
        activity_info: ActivityUpdate,
    ) -> None:
        """Patch the given fields and refresh every completion snapshot of the activity."""
        values = activity_info.changes()
        if not values:
            if not await ActivityService.exists(db, activity_id):
                raise ActivityNotFoundError()
            return

        try:
            async with db.begin_nested():
                result = await db.execute(
                    update(Activity)
                    .where(Activity.id == activity_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        except IntegrityError as exc:
            logger.info(f"Title conflict updating activity {activity_id}")
            _raise_title_conflict(exc)

        if result.rowcount == 0:
            raise ActivityNotFoundError()
        if result.rowcount > 1:
            raise InternalError(f"Update of activity {activity_id} matched {result.rowcount} rows")

        synced = await UserActivityService.sync_activity(db, activity_id, values)
        logger.info(f"Updated activity {activity_id} ({', '.join(values)}), {synced} completion records synced")

    @staticmethod
    async def delete_activity(db: AsyncSession, activity_id: str) -> None:
        result = await db.execute(
            delete(Activity)
            .where(Activity.id == activity_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ActivityNotFoundError()

        removed = await UserActivityService.remove_for_activity(db, activity_id)
        logger.info(f"Deleted activity {activity_id}, {removed} completion records removed")

    @staticmethod
    async def delete_category(db: AsyncSession, category: str) -> int:
        """Delete every activity in the category; returns how many were deleted."""
        result = await db.execute(
            delete(Activity)
            .where(func.lower(Activity.category) == category.lower())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise CategoryNotFoundError()

        removed = await UserActivityService.remove_for_category(db, category)
        logger.info(
            f"Deleted category '{category}': {result.rowcount} activities, "
            f"{removed} completion records"
        )
        return result.rowcount

    @staticmethod
    async def rename_category(db: AsyncSession, old_category: str, new_category: str) -> int:
        """Move every activity of a category to a new name; returns how many were changed."""
        result = await db.execute(
            update(Activity)
            .where(func.lower(Activity.category) == old_category.lower())
            .values(category=new_category)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise CategoryNotFoundError()

        renamed = await UserActivityService.rename_category(db, old_category, new_category)
        logger.info(
            f"Renamed category '{old_category}' to '{new_category}': {result.rowcount} activities, "
            f"{renamed} completion records"
        )
        return result.rowcount
