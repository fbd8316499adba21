"""
Topic service — read-only access to the seeded topics.

Topics never change through the API, so the list is served from the
cache whenever Redis is available.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import TOPICS_LIST_KEY, cache
from forum.config import settings
from forum.models import Topic


def _topic_to_dict(topic: Topic) -> dict:
    return {
        "id": topic.id,
        "title": topic.title,
        "description": topic.description or "",
    }


async def list_topics(db: AsyncSession) -> list[dict]:
    """Return every topic ordered by id."""
    cached = await cache.get(TOPICS_LIST_KEY)
    if cached is not None:
        return cached

    result = await db.execute(select(Topic).order_by(Topic.id))
    topics = [_topic_to_dict(t) for t in result.scalars().all()]

    await cache.set(TOPICS_LIST_KEY, topics, ttl=settings.CACHE_TTL_TOPICS)
    return topics
