"""
Comment service — comments under a post.

Same rules as posts (author or moderator may edit/delete) with no
dependent rows to cascade. Comment lists are not cached: they change
with every reply.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.errors import NotFoundError, ReferentialError, ValidationError
from forum.models import Comment, User
from forum.services.authorization import ensure_can_modify
from forum.services.validation import require

logger = logging.getLogger(__name__)


def _comment_to_dict(comment: Comment, author: str) -> dict:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "content": comment.content,
        "author": author,
    }


async def _author_name(db: AsyncSession, user_id: int) -> str:
    result = await db.execute(select(User.username).where(User.id == user_id))
    return result.scalar_one()


async def _lock_comment(db: AsyncSession, comment_id: int) -> Comment | None:
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def list_comments(db: AsyncSession, post_id: int | None) -> list[dict]:
    """Comments of *post_id* ordered by id; empty for an unknown or deleted post."""
    if post_id is None:
        raise ValidationError("Missing postId parameter")

    q = (
        select(Comment.id, Comment.post_id, Comment.content, User.username)
        .join(User, Comment.user_id == User.id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.id)
    )
    result = await db.execute(q)
    return [
        {
            "id": row.id,
            "post_id": row.post_id,
            "content": row.content,
            "author": row.username,
        }
        for row in result.all()
    ]


async def create_comment(
    db: AsyncSession,
    post_id: int,
    author_id: int,
    content: str,
) -> dict:
    require({"postId": post_id, "userId": author_id, "content": content})

    comment = Comment(post_id=post_id, user_id=author_id, content=content)
    db.add(comment)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ReferentialError(
            f"Post {post_id} or user {author_id} does not exist"
        ) from exc

    logger.info("Created comment id=%d on post=%d by user=%d", comment.id, post_id, author_id)
    return _comment_to_dict(comment, await _author_name(db, author_id))


async def update_comment(
    db: AsyncSession,
    comment_id: int,
    actor_id: int,
    content: str,
) -> dict:
    require({"id": comment_id, "userId": actor_id, "content": content})

    comment = await _lock_comment(db, comment_id)
    if comment is None:
        raise NotFoundError(f"Comment {comment_id} not found")
    await ensure_can_modify(db, actor_id, comment, "comment", "edit")

    comment.content = content
    await db.flush()

    logger.info("Updated comment id=%d by actor=%d", comment_id, actor_id)
    return _comment_to_dict(comment, await _author_name(db, comment.user_id))


async def delete_comment(db: AsyncSession, comment_id: int, actor_id: int) -> None:
    require({"id": comment_id, "userId": actor_id})

    comment = await _lock_comment(db, comment_id)
    if comment is None:
        raise NotFoundError(f"Comment {comment_id} not found")
    await ensure_can_modify(db, actor_id, comment, "comment", "delete")

    await db.delete(comment)
    await db.flush()
    logger.info("Deleted comment id=%d by actor=%d", comment_id, actor_id)
