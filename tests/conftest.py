"""
Test infrastructure for the Forum API.

Strategy
--------
- SQLite in-memory via aiosqlite, so no PostgreSQL is needed in CI.
- StaticPool makes every session share the one in-memory connection;
  SQLite in-memory databases are connection-scoped and a second
  connection would see an empty database.
- ``PRAGMA foreign_keys=ON`` is installed on the test engine exactly as
  ``build_engine`` does for SQLite in production, so dangling references
  fail the same way they do on PostgreSQL.
- ``get_db`` is overridden so requests use the test session factory;
  the lifespan (engine creation, seeding, Redis) never runs under
  ASGITransport.
- Tables are created before and dropped after every test.
- Redis stays disconnected (``cache._redis = None``); the CacheManager
  turns every call into a miss/no-op, so tests hit the real DB path.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from forum.cache import cache
from forum.database import Base, commit, enable_sqlite_foreign_keys, get_db
from forum.main import app
from forum.middleware import install_query_counter
from forum.models import Topic, User

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

enable_sqlite_foreign_keys(engine_test)
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override — replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            cache.discard_pending(session)
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for seeding data and asserting on table contents."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def forum(db_session: AsyncSession) -> dict:
    """
    The cast used across the suite, committed so HTTP requests see it:

    - alice: moderator
    - bob, carol: regular users
    - topic "General" (id 1)
    """
    alice = User(username="alice", is_moderator=True)
    bob = User(username="bob")
    carol = User(username="carol")
    topic = Topic(title="General", description="General discussion")
    db_session.add_all([alice, bob, carol, topic])
    await db_session.commit()
    return {
        "alice": alice.id,
        "bob": bob.id,
        "carol": carol.id,
        "topic": topic.id,
    }
