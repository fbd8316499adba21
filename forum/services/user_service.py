"""
User service — the user directory.

There are no passwords: logging in with a username either finds the
existing account or creates a non-moderator one. Moderator flags only
ever come from seed data.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.errors import ConflictError, NotFoundError, ValidationError
from forum.models import User

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "is_moderator": user.is_moderator,
    }


async def _find_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def resolve_or_create(db: AsyncSession, username: str | None) -> dict:
    """
    Return the user called *username* (after trimming), creating it on
    first sight.

    Matching is exact and case-sensitive. Two concurrent first logins
    with the same name are arbitrated by the unique index on
    ``users.username``: the losing insert is rolled back and the lookup
    repeated, so both callers end up with the same id. If the winning row
    is still not visible the caller gets ``ConflictError`` and should
    retry.
    """
    name = (username or "").strip()
    if not name:
        raise ValidationError("Username cannot be empty")

    user = await _find_by_username(db, name)
    if user is not None:
        return _user_to_dict(user)

    user = User(username=name, is_moderator=False)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.warning("Concurrent creation of username=%r detected, re-reading", name)
        user = await _find_by_username(db, name)
        if user is None:
            raise ConflictError(f"User {name!r} is being created concurrently, retry the login")
        return _user_to_dict(user)

    logger.info("Created user id=%d username=%r", user.id, name)
    return _user_to_dict(user)


async def get_user(db: AsyncSession, user_id: int) -> dict:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return _user_to_dict(user)


async def is_moderator(db: AsyncSession, user_id: int) -> bool:
    """Return the moderator flag of *user_id*; ``NotFoundError`` if no such user."""
    result = await db.execute(select(User.is_moderator).where(User.id == user_id))
    flag = result.scalar_one_or_none()
    if flag is None:
        raise NotFoundError(f"User {user_id} not found")
    return bool(flag)
