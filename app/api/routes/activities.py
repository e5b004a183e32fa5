"""Activity catalog endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Query, Response, status

from app.api.filters import ActivityFilter
from app.core.dependencies import AdminUser, CurrentUser, DbSession
from app.schemas.activity import (
    ActivityCreate,
    ActivityCreatedResponse,
    ActivityDetailResponse,
    ActivityListResponse,
    ActivityUpdate,
    CompletionUpdate,
)
from app.services.activity_service import ActivityService
from app.services.user_activity_service import UserActivityService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=ActivityListResponse)
async def list_activities(
    db: DbSession,
    current_user: CurrentUser,
    activity_query: ActivityFilter,
    completed: bool = Query(False),
):
    """
    List activities with filtering, keyword search, sorting and pagination.

    With `completed=true` only the caller's completed activities are listed.
    """
    if completed:
        return await UserActivityService.get_completed_activities(db, current_user.id, activity_query)
    return await ActivityService.get_activities(db, activity_query)


@router.post("", response_model=ActivityCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    activity_data: ActivityCreate,
    db: DbSession,
    admin: AdminUser,
):
    """
    Create a catalog activity. Admin only.
    """
    activity_id = await ActivityService.create_activity(db, activity_data)
    return ActivityCreatedResponse(id=activity_id)


@router.get("/{activity_id}", response_model=ActivityDetailResponse)
async def get_activity(
    activity_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    """
    Get one activity and whether the caller has completed it.
    """
    # A completed activity is served from the caller's own copy
    record = await UserActivityService.get_user_activity(db, current_user.id, activity_id)
    if record is not None:
        return ActivityDetailResponse(**record.model_dump(), completed=True)

    activity = await ActivityService.get_activity(db, activity_id)
    return ActivityDetailResponse(**activity.model_dump(), completed=False)


@router.patch("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_activity(
    activity_id: str,
    activity_data: ActivityUpdate,
    db: DbSession,
    admin: AdminUser,
):
    """
    Partially update an activity. Admin only.
    """
    if not activity_data.changes():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to update",
        )

    await ActivityService.update_activity(db, activity_id, activity_data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    activity_id: str,
    db: DbSession,
    admin: AdminUser,
):
    """
    Delete an activity along with every completion of it. Admin only.
    """
    await ActivityService.delete_activity(db, activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{activity_id}/completed", status_code=status.HTTP_204_NO_CONTENT)
async def set_activity_completed(
    activity_id: str,
    completion: CompletionUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """
    Mark the activity completed or not completed for the caller.
    """
    if completion.completed:
        await UserActivityService.complete_activity(db, current_user.id, activity_id)
    else:
        await UserActivityService.uncomplete_activity(db, current_user.id, activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
