"""Identity and credential store."""

import logging
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    EmailConflictError,
    InternalError,
    UserNotFoundError,
    UsernameConflictError,
)
from app.core.security import FAKE_HASHED_PASSWORD, hash_password, verify_password
from app.db.errors import violates_constraint
from app.models.user import User
from app.schemas.user import (
    UserByEmail,
    UserById,
    UserByUsername,
    UserCreate,
    UserIdentity,
    UserResponse,
    UserUpdate,
)
from app.services.user_activity_service import UserActivityService

logger = logging.getLogger(__name__)

USERNAME_INDEX = "uq_users_username"
EMAIL_INDEX = "uq_users_email"


def _identity_clause(identity: UserIdentity):
    """Match a user by exactly one of id, username or email (the latter two ignoring case)."""
    if isinstance(identity, UserById):
        return User.id == identity.id
    if isinstance(identity, UserByUsername):
        return func.lower(User.username) == identity.username.lower()
    if isinstance(identity, UserByEmail):
        return func.lower(User.email) == identity.email.lower()
    raise TypeError(f"Unsupported user identity: {identity!r}")


def _raise_user_conflict(exc: IntegrityError) -> None:
    if violates_constraint(exc, USERNAME_INDEX):
        raise UsernameConflictError() from exc
    if violates_constraint(exc, EMAIL_INDEX):
        raise EmailConflictError() from exc
    raise exc


class UserService:
    """Users, their credentials and roles."""

    # ─── Registration ───────────────────────────
    @staticmethod
    async def create_user(
        db: AsyncSession,
        user_data: UserCreate,
        roles: Optional[List[str]] = None,
    ) -> str:
        """Store a new user with a hashed password; returns the new id."""
        user = User(
            username=user_data.username,
            email=user_data.email,
            hashed_password=hash_password(user_data.password),
            roles=list(roles or []),
        )
        try:
            async with db.begin_nested():
                db.add(user)
        except IntegrityError as exc:
            logger.info(f"Registration conflict for '{user_data.username}'")
            _raise_user_conflict(exc)

        logger.info(f"Created user {user.id} ({user.username})")
        return user.id

    # ─── Lookup ─────────────────────────────────
    @staticmethod
    async def _find(db: AsyncSession, identity: UserIdentity) -> Optional[User]:
        result = await db.execute(
            select(User)
            .where(_identity_clause(identity))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user(db: AsyncSession, identity: UserIdentity) -> Optional[UserResponse]:
        user = await UserService._find(db, identity)
        return UserResponse.model_validate(user) if user else None

    @staticmethod
    async def get_user_with_credentials(
        db: AsyncSession,
        identity: UserIdentity,
        password: str,
    ) -> UserResponse:
        """
        Return the user only if ``password`` matches.

        An unknown user and a wrong password fail identically, and a hash is
        verified in both cases so the response time does not reveal which.
        """
        user = await UserService._find(db, identity)
        hashed_password = user.hashed_password if user else FAKE_HASHED_PASSWORD
        password_correct = verify_password(password, hashed_password)

        if not user or not password_correct:
            raise UserNotFoundError()
        return UserResponse.model_validate(user)

    # ─── Update ─────────────────────────────────
    @staticmethod
    async def update_user(db: AsyncSession, identity: UserIdentity, user_data: UserUpdate) -> None:
        values = user_data.changes()
        if "password" in values:
            values["hashed_password"] = hash_password(values.pop("password"))

        if not values:
            if await UserService._find(db, identity) is None:
                raise UserNotFoundError()
            return

        try:
            async with db.begin_nested():
                result = await db.execute(
                    update(User)
                    .where(_identity_clause(identity))
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        except IntegrityError as exc:
            logger.info(f"Update conflict for user {identity!r}")
            _raise_user_conflict(exc)

        if result.rowcount == 0:
            raise UserNotFoundError()
        if result.rowcount > 1:
            raise InternalError(f"Update of user {identity!r} matched {result.rowcount} rows")
        logger.info(f"Updated user {identity!r} ({', '.join(values)})")

    # ─── Delete ─────────────────────────────────
    @staticmethod
    async def delete_user(db: AsyncSession, identity: UserIdentity) -> None:
        """Delete the user and every completion record they own."""
        user = await UserService._find(db, identity)
        if user is None:
            raise UserNotFoundError()

        await db.execute(
            delete(User)
            .where(User.id == user.id)
            .execution_options(synchronize_session=False)
        )
        removed = await UserActivityService.remove_for_user(db, user.id)
        logger.info(f"Deleted user {user.id}, {removed} completion records removed")
