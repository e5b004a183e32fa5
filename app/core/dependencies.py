"""Shared FastAPI dependencies: database session and the authenticated caller."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTokenError
from app.db.session import get_db
from app.schemas.user import UserById, UserResponse
from app.services.auth_service import AuthService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

bearer_scheme = HTTPBearer(auto_error=False)
basic_scheme = HTTPBasic(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def _not_authorized(scheme: str = "Bearer") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not Authorized",
        headers={"WWW-Authenticate": scheme},
    )


async def get_current_user(
    db: DbSession,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> UserResponse:
    """Resolve the bearer token to a stored user, or fail with 401."""
    if credentials is None:
        raise _not_authorized()

    try:
        identity = AuthService.get_user_identity(credentials.credentials)
    except InvalidTokenError:
        logger.info("Rejected invalid or expired bearer token")
        raise _not_authorized()

    # The user may have been deleted since the token was issued
    user = await UserService.get_user(db, UserById(id=identity.user_id))
    if user is None:
        raise _not_authorized()
    return user


async def get_admin_user(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
) -> UserResponse:
    if ADMIN_ROLE not in current_user.roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return current_user


async def get_basic_credentials(
    credentials: Annotated[Optional[HTTPBasicCredentials], Depends(basic_scheme)],
) -> HTTPBasicCredentials:
    if credentials is None:
        raise _not_authorized("Basic")
    return credentials


CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
AdminUser = Annotated[UserResponse, Depends(get_admin_user)]
BasicCredentials = Annotated[HTTPBasicCredentials, Depends(get_basic_credentials)]
