"""
Tests for completion records and their cascades from the catalog.

Run with: pytest tests/test_user_activity_service.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import (
    ActivityNotFoundError,
    AlreadyCompleteError,
    AlreadyNotCompleteError,
    UserNotFoundError,
)
from app.models.activity import Activity
from app.models.user_activity import UserActivity
from app.schemas.activity import ActivityQuery, ActivityUpdate, SortBy
from app.services.activity_service import ActivityService
from app.services.user_activity_service import UserActivityService
from tests.helpers import add_activity, add_user


async def record_count(db, **criteria) -> int:
    statement = select(UserActivity)
    for field, value in criteria.items():
        statement = statement.where(getattr(UserActivity, field) == value)
    result = await db.execute(statement)
    return len(result.scalars().all())


# ============================================
# Completion
# ============================================

class TestCompletion:
    """Completing and uncompleting activities."""

    @pytest.mark.asyncio
    async def test_complete_copies_activity(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db, title="Body Scan", duration=600, difficulty=3)

        await UserActivityService.complete_activity(db, user_id, activity_id)
        await db.commit()

        record = await UserActivityService.get_user_activity(db, user_id, activity_id)
        activity = await ActivityService.get_activity(db, activity_id)
        assert record == activity
        assert await UserActivityService.is_activity_complete(db, user_id, activity_id) is True

    @pytest.mark.asyncio
    async def test_complete_twice(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db)

        await UserActivityService.complete_activity(db, user_id, activity_id)
        await db.commit()

        with pytest.raises(AlreadyCompleteError):
            await UserActivityService.complete_activity(db, user_id, activity_id)
        assert await record_count(db, user_id=user_id) == 1

    @pytest.mark.asyncio
    async def test_repeat_in_same_transaction_keeps_first(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db)

        await UserActivityService.complete_activity(db, user_id, activity_id)
        with pytest.raises(AlreadyCompleteError):
            await UserActivityService.complete_activity(db, user_id, activity_id)
        await db.commit()

        assert await UserActivityService.is_activity_complete(db, user_id, activity_id) is True

    @pytest.mark.asyncio
    async def test_racing_completions_collapse_to_one(self, file_engine):
        factory = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as db:
            user_id = await add_user(db)
            activity_id = await add_activity(db)

        async def complete():
            async with factory() as db:
                await UserActivityService.complete_activity(db, user_id, activity_id)
                await db.commit()

        outcomes = await asyncio.gather(complete(), complete(), return_exceptions=True)

        assert outcomes.count(None) == 1
        assert [type(outcome) for outcome in outcomes if outcome is not None] == [AlreadyCompleteError]
        async with factory() as db:
            assert await record_count(db, user_id=user_id) == 1

    @pytest.mark.asyncio
    async def test_unknown_user_or_activity(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db)

        with pytest.raises(UserNotFoundError):
            await UserActivityService.complete_activity(db, "no-such-user", activity_id)
        with pytest.raises(ActivityNotFoundError):
            await UserActivityService.complete_activity(db, user_id, "no-such-activity")

    @pytest.mark.asyncio
    async def test_uncomplete(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db)
        await UserActivityService.complete_activity(db, user_id, activity_id)

        await UserActivityService.uncomplete_activity(db, user_id, activity_id)

        assert await UserActivityService.get_user_activity(db, user_id, activity_id) is None
        assert await UserActivityService.is_activity_complete(db, user_id, activity_id) is False
        with pytest.raises(AlreadyNotCompleteError):
            await UserActivityService.uncomplete_activity(db, user_id, activity_id)

    @pytest.mark.asyncio
    async def test_uncomplete_never_completed(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db)

        with pytest.raises(AlreadyNotCompleteError):
            await UserActivityService.uncomplete_activity(db, user_id, activity_id)


# ============================================
# Completed listing
# ============================================

class TestCompletedActivities:
    """Per-user listing with the catalog's filters."""

    @pytest.mark.asyncio
    async def test_scoped_to_user(self, db, sample_activities):
        first = await add_user(db, "first")
        second = await add_user(db, "second")
        ids = [await add_activity(db, **values) for values in sample_activities]

        for activity_id in ids[:3]:
            await UserActivityService.complete_activity(db, first, activity_id)
        await UserActivityService.complete_activity(db, second, ids[4])

        result = await UserActivityService.get_completed_activities(db, first)
        assert result.total == 3
        assert {activity.id for activity in result.activities} == set(ids[:3])

        query = ActivityQuery(category="relaxation", sort_by=SortBy(key="duration", direction="desc"))
        relaxing = await UserActivityService.get_completed_activities(db, first, query)
        assert [activity.title for activity in relaxing.activities] == ["Body Scan", "Box Breathing"]

        searched = await UserActivityService.get_completed_activities(
            db, second, ActivityQuery(search_term="pomodoro")
        )
        assert searched.total == 1
        assert searched.activities[0].id == ids[4]

    @pytest.mark.asyncio
    async def test_none_completed(self, db):
        user_id = await add_user(db)
        await add_activity(db)

        result = await UserActivityService.get_completed_activities(db, user_id)

        assert result.total == 0
        assert result.activities == []


# ============================================
# Catalog cascades
# ============================================

class TestCascades:
    """Catalog mutations keep completion records consistent."""

    @pytest.mark.asyncio
    async def test_delete_activity_removes_every_completion(self, db):
        users = [await add_user(db, name) for name in ("first", "second", "third")]
        activity_id = await add_activity(db, title="Body Scan")
        other_id = await add_activity(db, title="Box Breathing")
        for user_id in users:
            await UserActivityService.complete_activity(db, user_id, activity_id)
        await UserActivityService.complete_activity(db, users[0], other_id)
        await db.commit()
        assert await record_count(db, activity_id=activity_id) == 3

        await ActivityService.delete_activity(db, activity_id)
        await db.commit()

        assert await record_count(db, activity_id=activity_id) == 0
        assert await record_count(db, activity_id=other_id) == 1

    @pytest.mark.asyncio
    async def test_rename_category_updates_copies(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db, category="Relaxation")
        await UserActivityService.complete_activity(db, user_id, activity_id)
        await db.commit()

        await ActivityService.rename_category(db, "relaxation", "Calm")
        await db.commit()

        activity = await ActivityService.get_activity(db, activity_id)
        record = await UserActivityService.get_user_activity(db, user_id, activity_id)
        assert activity.category == "Calm"
        assert record.category == "Calm"

    @pytest.mark.asyncio
    async def test_delete_category_removes_copies(self, db):
        user_id = await add_user(db)
        kept = await add_activity(db, title="Pomodoro Sprint", category="Productivity")
        dropped = await add_activity(db, title="Body Scan", category="Relaxation")
        await UserActivityService.complete_activity(db, user_id, kept)
        await UserActivityService.complete_activity(db, user_id, dropped)
        await db.commit()

        await ActivityService.delete_category(db, "RELAXATION")
        await db.commit()

        assert await UserActivityService.is_activity_complete(db, user_id, kept) is True
        assert await UserActivityService.is_activity_complete(db, user_id, dropped) is False

    @pytest.mark.asyncio
    async def test_update_activity_updates_copies(self, db):
        first = await add_user(db, "first")
        second = await add_user(db, "second")
        activity_id = await add_activity(db, title="Body Scan", duration=5, difficulty=1)
        for user_id in (first, second):
            await UserActivityService.complete_activity(db, user_id, activity_id)
        await db.commit()

        changes = ActivityUpdate(title="Full Body Scan", duration=20, difficulty="difficult", content="Lie down.")
        await ActivityService.update_activity(db, activity_id, changes)
        await db.commit()

        activity = await ActivityService.get_activity(db, activity_id)
        for user_id in (first, second):
            record = await UserActivityService.get_user_activity(db, user_id, activity_id)
            assert record == activity
            assert record.title == "Full Body Scan"
            assert record.difficulty == 3

    @pytest.mark.asyncio
    async def test_failed_cascade_leaves_catalog_unchanged(self, session_factory):
        """A failure part way through a rename rolls back the catalog change too."""
        async with session_factory() as db:
            user_id = await add_user(db)
            activity_id = await add_activity(db, category="Relaxation")
            await UserActivityService.complete_activity(db, user_id, activity_id)
            await db.commit()

        async with session_factory() as db:
            with patch.object(
                UserActivityService,
                "rename_category",
                AsyncMock(side_effect=RuntimeError("connection lost")),
            ):
                with pytest.raises(RuntimeError):
                    await ActivityService.rename_category(db, "Relaxation", "Calm")
            await db.rollback()

        async with session_factory() as db:
            activity = await ActivityService.get_activity(db, activity_id)
            record = await UserActivityService.get_user_activity(db, user_id, activity_id)
            assert activity.category == "Relaxation"
            assert record.category == "Relaxation"


# ============================================
# Reconciliation
# ============================================

class TestReconcile:
    """Repairing records that drifted from the catalog."""

    @pytest.mark.asyncio
    async def test_repairs_drift(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db, title="Body Scan", category="Relaxation")
        orphan_id = await add_activity(db, title="Box Breathing")
        await UserActivityService.complete_activity(db, user_id, activity_id)
        await UserActivityService.complete_activity(db, user_id, orphan_id)
        await db.commit()

        # Change the catalog behind the service's back
        await db.execute(
            update(Activity)
            .where(Activity.id == activity_id)
            .values(title="Deep Body Scan", category="Calm")
        )
        await ActivityService.delete_activity(db, orphan_id)
        await db.execute(
            UserActivity.__table__.insert().values(
                id="stale",
                user_id=user_id,
                activity_id=orphan_id,
                title="Box Breathing",
                category="Relaxation",
                description="",
                duration=1,
                difficulty=1,
                content="",
                created=datetime.now(timezone.utc),
            )
        )
        await db.commit()

        summary = await UserActivityService.reconcile(db)
        await db.commit()

        assert summary["removed"] == 1
        record = await UserActivityService.get_user_activity(db, user_id, activity_id)
        assert record.title == "Deep Body Scan"
        assert record.category == "Calm"
        assert await UserActivityService.is_activity_complete(db, user_id, orphan_id) is False

    @pytest.mark.asyncio
    async def test_is_idempotent(self, db):
        user_id = await add_user(db)
        activity_id = await add_activity(db)
        await UserActivityService.complete_activity(db, user_id, activity_id)
        await db.commit()

        await UserActivityService.reconcile(db)
        summary = await UserActivityService.reconcile(db)
        await db.commit()

        assert summary["removed"] == 0
        assert await record_count(db, user_id=user_id) == 1
