"""
CacheManager tests — read-through behaviour of the list caches and their
invalidation, using an in-process stand-in for the Redis client.
"""
import fnmatch

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import PENDING_INVALIDATIONS, TOPICS_LIST_KEY, CacheManager, cache, posts_list_key
from forum.models import Topic
from forum.services import post_service, topic_service


class InMemoryRedis:
    """Just enough of redis.asyncio.Redis for CacheManager."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def scan_iter(self, match):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


@pytest.fixture
def fake_redis():
    fake = InMemoryRedis()
    cache._redis = fake
    yield fake
    cache._redis = None


@pytest.mark.asyncio
async def test_disconnected_cache_is_a_miss():
    manager = CacheManager()
    assert await manager.get("anything") is None
    await manager.set("anything", [1, 2])
    assert manager.stats["misses"] == 1
    assert manager.stats["connected"] is False


@pytest.mark.asyncio
async def test_topics_served_from_cache(db_session: AsyncSession, fake_redis: InMemoryRedis):
    db_session.add(Topic(title="General", description="General discussion"))
    await db_session.commit()

    first = await topic_service.list_topics(db_session)
    assert TOPICS_LIST_KEY in fake_redis.store

    # A row added behind the cache's back is not visible until invalidation.
    db_session.add(Topic(title="Homework", description="Ask about assignments"))
    await db_session.commit()
    assert await topic_service.list_topics(db_session) == first

    await cache.invalidate_topics()
    assert len(await topic_service.list_topics(db_session)) == 2


@pytest.mark.asyncio
async def test_post_writes_invalidate_post_list(db_session: AsyncSession, forum: dict, fake_redis: InMemoryRedis):
    key = posts_list_key(forum["topic"])
    assert await post_service.list_posts(db_session, forum["topic"]) == []
    assert key in fake_redis.store

    post = await post_service.create_post(db_session, forum["topic"], forum["bob"], "Hi", "Hello")
    await db_session.commit()
    await cache.apply_pending(db_session)
    assert key not in fake_redis.store
    assert await post_service.list_posts(db_session, forum["topic"]) == [post]

    await post_service.update_post(db_session, post["id"], forum["bob"], "Hi", "Edited")
    await db_session.commit()
    await cache.apply_pending(db_session)
    listed = await post_service.list_posts(db_session, forum["topic"])
    assert listed[0]["content"] == "Edited"

    await post_service.delete_post(db_session, post["id"], forum["bob"])
    await db_session.commit()
    await cache.apply_pending(db_session)
    assert await post_service.list_posts(db_session, forum["topic"]) == []


@pytest.mark.asyncio
async def test_list_recached_before_commit_is_dropped_after_commit(
    db_session: AsyncSession, forum: dict, fake_redis: InMemoryRedis
):
    key = posts_list_key(forum["topic"])
    post = await post_service.create_post(db_session, forum["topic"], forum["bob"], "Hi", "Hello")
    await db_session.commit()
    await cache.apply_pending(db_session)
    committed = await post_service.list_posts(db_session, forum["topic"])
    assert committed == [post]

    await post_service.delete_post(db_session, post["id"], forum["bob"])
    # Flushed but not committed: the key is only queued.
    assert key in fake_redis.store
    assert db_session.info[PENDING_INVALIDATIONS] == {key}

    # Another request still sees the committed rows and caches them.
    await cache.set(key, committed)

    await db_session.commit()
    await cache.apply_pending(db_session)
    assert PENDING_INVALIDATIONS not in db_session.info
    assert await post_service.list_posts(db_session, forum["topic"]) == []


@pytest.mark.asyncio
async def test_rolled_back_write_keeps_cached_list(db_session: AsyncSession, forum: dict, fake_redis: InMemoryRedis):
    key = posts_list_key(forum["topic"])
    post = await post_service.create_post(db_session, forum["topic"], forum["bob"], "Hi", "Hello")
    await db_session.commit()
    await cache.apply_pending(db_session)
    committed = await post_service.list_posts(db_session, forum["topic"])

    await post_service.delete_post(db_session, post["id"], forum["bob"])
    cache.discard_pending(db_session)
    await db_session.rollback()

    assert PENDING_INVALIDATIONS not in db_session.info
    assert key in fake_redis.store
    assert await post_service.list_posts(db_session, forum["topic"]) == committed


@pytest.mark.asyncio
async def test_delete_request_invalidates_after_commit(
    async_client: AsyncClient, forum: dict, fake_redis: InMemoryRedis
):
    resp = await async_client.post("/posts", json={
        "topicId": forum["topic"], "userId": forum["bob"], "title": "Hi", "content": "Hello",
    })
    post = resp.json()
    listed = await async_client.get("/posts", params={"topicId": forum["topic"]})
    assert listed.json() == [post]
    assert posts_list_key(forum["topic"]) in fake_redis.store

    resp = await async_client.request("DELETE", "/posts", json={"id": post["id"], "userId": forum["bob"]})
    assert resp.status_code == 204
    assert posts_list_key(forum["topic"]) not in fake_redis.store

    listed = await async_client.get("/posts", params={"topicId": forum["topic"]})
    assert listed.json() == []
