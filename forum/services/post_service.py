"""
Post service — lifecycle of posts within a topic.

Design notes
------------
- Every function works inside the caller's session and only flushes;
  ``get_db`` owns commit/rollback. Multi-statement writes (the cascading
  delete) therefore succeed or fail as one transaction.
- Rows about to be edited or deleted are read ``FOR UPDATE`` (ignored
  on SQLite). On PostgreSQL this also blocks a concurrent comment insert
  on the same post until the delete commits, after which the insert's
  foreign-key check fails instead of leaving an orphan.
- Dangling topic/author references are caught by the store's foreign
  keys and surfaced as ``ReferentialError``.
- The per-topic post list is cached. Writes queue its invalidation on
  the session and ``get_db`` drops the key only after the commit, so a
  reader racing the transaction cannot re-cache stale rows.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import cache, posts_list_key
from forum.config import settings
from forum.errors import NotFoundError, ReferentialError, ValidationError
from forum.models import Comment, Post, User
from forum.services.authorization import ensure_can_modify
from forum.services.validation import require

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _post_to_dict(post: Post, author: str) -> dict:
    return {
        "id": post.id,
        "topic_id": post.topic_id,
        "title": post.title,
        "content": post.content,
        "author": author,
    }


async def _author_name(db: AsyncSession, user_id: int) -> str:
    result = await db.execute(select(User.username).where(User.id == user_id))
    return result.scalar_one()


async def _lock_post(db: AsyncSession, post_id: int) -> Post | None:
    q = (
        select(Post)
        .where(Post.id == post_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_posts(db: AsyncSession, topic_id: int | None) -> list[dict]:
    """
    Return the posts of *topic_id* ordered by id, each with its author's
    username. An unknown topic simply has no posts.
    """
    if topic_id is None:
        raise ValidationError("Missing topicId parameter")

    cache_key = posts_list_key(topic_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    q = (
        select(Post.id, Post.topic_id, Post.title, Post.content, User.username)
        .join(User, Post.user_id == User.id)
        .where(Post.topic_id == topic_id)
        .order_by(Post.id)
    )
    result = await db.execute(q)
    posts = [
        {
            "id": row.id,
            "topic_id": row.topic_id,
            "title": row.title,
            "content": row.content,
            "author": row.username,
        }
        for row in result.all()
    ]

    await cache.set(cache_key, posts, ttl=settings.CACHE_TTL_POSTS)
    return posts


async def create_post(
    db: AsyncSession,
    topic_id: int,
    author_id: int,
    title: str,
    content: str,
) -> dict:
    require({"topicId": topic_id, "userId": author_id, "title": title, "content": content})

    post = Post(topic_id=topic_id, user_id=author_id, title=title, content=content)
    db.add(post)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ReferentialError(
            f"Topic {topic_id} or user {author_id} does not exist"
        ) from exc

    author = await _author_name(db, author_id)
    cache.invalidate_posts_on_commit(db, topic_id)
    logger.info("Created post id=%d in topic=%d by user=%d", post.id, topic_id, author_id)
    return _post_to_dict(post, author)


async def update_post(
    db: AsyncSession,
    post_id: int,
    actor_id: int,
    title: str,
    content: str,
) -> dict:
    """
    Overwrite the title and content of *post_id*. Topic and author are
    never changed.

    Raises ``NotFoundError`` before ``ForbiddenError``: an absent post
    cannot be authorized against.
    """
    require({"id": post_id, "userId": actor_id, "title": title, "content": content})

    post = await _lock_post(db, post_id)
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    await ensure_can_modify(db, actor_id, post, "post", "edit")

    post.title = title
    post.content = content
    await db.flush()

    cache.invalidate_posts_on_commit(db, post.topic_id)
    logger.info("Updated post id=%d by actor=%d", post_id, actor_id)
    return _post_to_dict(post, await _author_name(db, post.user_id))


async def delete_post(db: AsyncSession, post_id: int, actor_id: int) -> None:
    """
    Delete *post_id* together with every comment under it.

    Both DELETE statements run in the caller's transaction, so either the
    post and all its comments disappear or nothing does.
    """
    require({"id": post_id, "userId": actor_id})

    post = await _lock_post(db, post_id)
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    await ensure_can_modify(db, actor_id, post, "post", "delete")

    topic_id = post.topic_id
    # Children first: comments.post_id references posts.id.
    removed = await db.execute(delete(Comment).where(Comment.post_id == post_id))
    await db.delete(post)
    await db.flush()

    cache.invalidate_posts_on_commit(db, topic_id)
    logger.info(
        "Deleted post id=%d and %d comment(s) by actor=%d",
        post_id, removed.rowcount, actor_id,
    )
