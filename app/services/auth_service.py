"""Authentication Service: signed access tokens for verified credentials"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import InvalidTokenError
from app.schemas.user import TokenIdentity, TokenResponse, UserIdentity
from app.services.user_service import UserService

logger = logging.getLogger(__name__)
settings = get_settings()


class AuthService:
    """Issue and verify access tokens."""

    # ─── JWT Creation ───────────────────────────
    @staticmethod
    def create_access_token(
        user_id: str,
        roles: Optional[List[str]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(hours=settings.access_token_expire_hours))
        payload = {
            "sub": str(user_id),
            # Always present, empty for regular users
            "roles": list(roles or []),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    # ─── Decode JWT ──────────────────────────────
    @staticmethod
    def decode_token(token: str) -> dict:
        """Verify signature, expiry, issuer and audience; returns the claims."""
        try:
            return jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
                audience=settings.jwt_audience,
                issuer=settings.jwt_issuer,
            )
        except JWTError as exc:
            raise InvalidTokenError() from exc

    # ─── Login ───────────────────────────────────
    @staticmethod
    async def get_auth_token_for_user(
        db: AsyncSession,
        identity: UserIdentity,
        password: str,
    ) -> TokenResponse:
        """Check the credentials and issue a token; raises UserNotFoundError on any mismatch."""
        user = await UserService.get_user_with_credentials(db, identity, password)
        logger.info(f"Issued access token for user {user.id}")
        return TokenResponse(
            access_token=AuthService.create_access_token(user.id, user.roles),
            token_type="bearer",
            expires_in=settings.access_token_expire_seconds,
        )

    # ─── Verify ──────────────────────────────────
    @staticmethod
    def get_user_identity(token: str) -> TokenIdentity:
        payload = AuthService.decode_token(token)
        user_id = payload.get("sub")
        roles = payload.get("roles") or []
        if not user_id or not isinstance(roles, list):
            raise InvalidTokenError()
        return TokenIdentity(user_id=user_id, roles=roles)
