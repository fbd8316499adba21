"""
Authorization engine — who may edit or delete a piece of content.

A single rule covers posts and comments alike: the actor may modify an
item if they wrote it or if they are a moderator. Ownership is checked
first and needs no query; only non-owners cost a moderator lookup.

Callers must check that the item exists (and raise ``NotFoundError``)
before asking, since "absent" and "forbidden" are reported differently.
"""
import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from forum.errors import ForbiddenError, NotFoundError
from forum.services import user_service

logger = logging.getLogger(__name__)


class AuthoredItem(Protocol):
    id: int
    user_id: int


async def can_modify(db: AsyncSession, actor_id: int, item: AuthoredItem | None) -> bool:
    """Return True iff *actor_id* authored *item* or is a moderator. Never raises for a missing item."""
    if item is None:
        return False
    if actor_id == item.user_id:
        return True
    try:
        return await user_service.is_moderator(db, actor_id)
    except NotFoundError:
        return False


async def ensure_can_modify(
    db: AsyncSession,
    actor_id: int,
    item: AuthoredItem,
    kind: str,
    action: str = "edit",
) -> None:
    """Raise ``ForbiddenError`` unless *actor_id* may *action* the *kind* item."""
    if not await can_modify(db, actor_id, item):
        logger.warning(
            "Denied %s of %s id=%s by actor=%s (author=%s)",
            action, kind, item.id, actor_id, item.user_id,
        )
        raise ForbiddenError(f"Not allowed to {action} this {kind}")
