"""Category endpoints.

Categories are not stored on their own; they are the distinct (case
insensitive) category labels of the catalog's activities.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Query, Response, status

from app.api.filters import MAX_PAGE_SIZE, ActivityFilter
from app.core.dependencies import AdminUser, CurrentUser, DbSession
from app.core.exceptions import CategoryNotFoundError
from app.schemas.activity import ActivityListResponse, CategoryListResponse, CategoryRename
from app.services.activity_service import ActivityService

router = APIRouter()


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    db: DbSession,
    current_user: CurrentUser,
    page: Optional[int] = Query(None, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    order: Literal["asc", "desc", "ascending", "descending"] = "asc",
):
    """
    List categories with the number of activities in each, sorted by name.
    """
    return await ActivityService.get_categories(db, page, page_size, order)


@router.get("/{name}", response_model=ActivityListResponse)
async def get_category(
    name: str,
    db: DbSession,
    current_user: CurrentUser,
    activity_query: ActivityFilter,
):
    """
    List the activities of one category, accepting the same filters as /activities.
    """
    activity_query.category = name
    result = await ActivityService.get_activities(db, activity_query)
    if result.total == 0:
        raise CategoryNotFoundError()
    return result


@router.patch("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def rename_category(
    name: str,
    rename: CategoryRename,
    db: DbSession,
    admin: AdminUser,
):
    """
    Rename a category on every activity and completion record. Admin only.
    """
    await ActivityService.rename_category(db, name, rename.new_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    name: str,
    db: DbSession,
    admin: AdminUser,
):
    """
    Delete every activity in a category, and their completions. Admin only.
    """
    await ActivityService.delete_category(db, name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
