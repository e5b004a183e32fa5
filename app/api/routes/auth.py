"""Authentication endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.core.dependencies import BasicCredentials, DbSession
from app.core.exceptions import UserNotFoundError
from app.schemas.user import TokenResponse, UserByUsername, UserLogin
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter()


async def _issue_token(db: DbSession, username: str, password: str) -> TokenResponse:
    try:
        return await AuthService.get_auth_token_for_user(
            db, UserByUsername(username=username), password
        )
    except UserNotFoundError:
        # Unknown user and wrong password look the same to the caller
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not Authorized",
        )


# ─────────────────────────────────────────────
# Basic auth
# ─────────────────────────────────────────────

@router.get("", response_model=TokenResponse)
async def get_access_token(credentials: BasicCredentials, db: DbSession):
    """
    Exchange `Authorization: Basic <username:password>` for an access token.
    """
    return await _issue_token(db, credentials.username, credentials.password)


# ─────────────────────────────────────────────
# Login
# ─────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, db: DbSession):
    """
    Authenticate with a JSON body instead of Basic auth.
    """
    return await _issue_token(db, credentials.username, credentials.password)
