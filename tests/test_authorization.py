"""
Authorization engine tests — the single author-or-moderator rule applied
to posts and comments.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from forum.errors import ForbiddenError, NotFoundError
from forum.models import Comment, Post
from forum.services import comment_service, post_service, user_service
from forum.services.authorization import can_modify, ensure_can_modify


async def _bob_post(db: AsyncSession, forum: dict) -> Post:
    created = await post_service.create_post(db, forum["topic"], forum["bob"], "Hi", "Hello")
    return await db.get(Post, created["id"])


@pytest.mark.asyncio
async def test_author_can_modify_post(db_session: AsyncSession, forum: dict):
    post = await _bob_post(db_session, forum)
    assert await can_modify(db_session, forum["bob"], post) is True


@pytest.mark.asyncio
async def test_moderator_can_modify_post(db_session: AsyncSession, forum: dict):
    post = await _bob_post(db_session, forum)
    assert await can_modify(db_session, forum["alice"], post) is True


@pytest.mark.asyncio
async def test_other_user_cannot_modify_post(db_session: AsyncSession, forum: dict):
    post = await _bob_post(db_session, forum)
    assert await can_modify(db_session, forum["carol"], post) is False


@pytest.mark.asyncio
async def test_moderator_can_modify_own_post(db_session: AsyncSession, forum: dict):
    created = await post_service.create_post(db_session, forum["topic"], forum["alice"], "Rules", "Be nice")
    post = await db_session.get(Post, created["id"])
    assert await can_modify(db_session, forum["alice"], post) is True
    assert await can_modify(db_session, forum["bob"], post) is False


@pytest.mark.asyncio
async def test_same_rule_applies_to_comments(db_session: AsyncSession, forum: dict):
    post = await _bob_post(db_session, forum)
    created = await comment_service.create_comment(db_session, post.id, forum["carol"], "Reply")
    comment = await db_session.get(Comment, created["id"])

    assert await can_modify(db_session, forum["carol"], comment) is True
    assert await can_modify(db_session, forum["alice"], comment) is True
    assert await can_modify(db_session, forum["bob"], comment) is False


@pytest.mark.asyncio
async def test_missing_item_is_never_modifiable(db_session: AsyncSession, forum: dict):
    assert await can_modify(db_session, forum["alice"], None) is False


@pytest.mark.asyncio
async def test_unknown_actor_is_denied(db_session: AsyncSession, forum: dict):
    post = await _bob_post(db_session, forum)
    assert await can_modify(db_session, 9999, post) is False


@pytest.mark.asyncio
async def test_ensure_can_modify_raises_forbidden(db_session: AsyncSession, forum: dict):
    post = await _bob_post(db_session, forum)
    with pytest.raises(ForbiddenError, match="delete this post"):
        await ensure_can_modify(db_session, forum["carol"], post, "post", "delete")


@pytest.mark.asyncio
async def test_is_moderator_flags(db_session: AsyncSession, forum: dict):
    assert await user_service.is_moderator(db_session, forum["alice"]) is True
    assert await user_service.is_moderator(db_session, forum["bob"]) is False
    with pytest.raises(NotFoundError):
        await user_service.is_moderator(db_session, 9999)
