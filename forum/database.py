from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from forum.cache import cache
from forum.errors import StorageError
from forum.middleware import install_query_counter


class Base(DeclarativeBase):
    pass


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Turn on ``PRAGMA foreign_keys`` for every new DBAPI connection.

    SQLite ships with foreign-key enforcement disabled; without this a
    post could reference a topic that does not exist.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create the process-wide engine. Called once by the application lifespan."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, **kwargs)
        enable_sqlite_foreign_keys(engine)
    else:
        engine = create_async_engine(url, echo=echo, pool_pre_ping=True, **kwargs)
    install_query_counter(engine)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def commit(session: AsyncSession) -> None:
    """Commit *session*, then drop the cache entries its writes made stale."""
    await session.commit()
    await cache.apply_pending(session)


async def get_db(request: Request):
    """
    Per-request session bound to the factory created at startup.

    Everything an operation writes is committed together when the handler
    returns, or rolled back together when it raises.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            cache.discard_pending(session)
            await session.rollback()
            raise


async def ping(db: AsyncSession) -> None:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StorageError("Database is unreachable") from exc
