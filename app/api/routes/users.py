"""Current user endpoints: registration, profile and completed activities."""

from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Response, status

from app.api.filters import ActivityFilter
from app.core.dependencies import CurrentUser, DbSession
from app.schemas.activity import ActivityListResponse
from app.schemas.user import (
    UserById,
    UserCreate,
    UserCreatedResponse,
    UserResponse,
    UserUpdate,
)
from app.services.user_activity_service import UserActivityService
from app.services.user_service import UserService

router = APIRouter()


@router.get("", response_model=UserResponse)
async def get_current_user_profile(current_user: CurrentUser):
    """
    Get the signed-in user.
    """
    return current_user


@router.post("", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: DbSession,
    authorization: Optional[str] = Header(None),
):
    """
    Register a new user. Not available while signed in.
    """
    if authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Already logged in",
        )

    # Roles are never taken from the request
    user_id = await UserService.create_user(db, user_data)
    return UserCreatedResponse(id=user_id)


@router.patch("", status_code=status.HTTP_204_NO_CONTENT)
async def update_current_user(
    user_data: UserUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """
    Update the signed-in user's username, email or password.
    """
    if not user_data.changes():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to update",
        )

    # Unchanged values are dropped so they are not conflict-checked against ourselves
    if user_data.username == current_user.username:
        user_data.username = None
    if user_data.email == current_user.email:
        user_data.email = None

    await UserService.update_user(db, UserById(id=current_user.id), user_data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_current_user(
    db: DbSession,
    current_user: CurrentUser,
):
    """
    Delete the signed-in user and their completion history.
    """
    await UserService.delete_user(db, UserById(id=current_user.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/activities", response_model=ActivityListResponse)
async def list_completed_activities(
    db: DbSession,
    current_user: CurrentUser,
    activity_query: ActivityFilter,
):
    """
    List the signed-in user's completed activities, with the /activities filters.
    """
    return await UserActivityService.get_completed_activities(db, current_user.id, activity_query)
