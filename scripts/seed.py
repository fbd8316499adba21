"""Database seeder for the forum API."""
import argparse
import asyncio
import logging
import time

from forum.cache import cache
from forum.config import settings
from forum.database import Base, build_engine, build_session_factory
from forum.seed import seed_defaults


async def seed(reset: bool = False) -> None:
    engine = build_engine(settings.DATABASE_URL)
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            print("Dropping existing tables")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        inserted = await seed_defaults(session)
        await session.commit()
    await engine.dispose()

    # Cached lists may describe the old rows.
    await cache.connect()
    await cache.invalidate_topics()
    await cache.invalidate_posts()
    await cache.disconnect()

    elapsed = time.perf_counter() - start
    print(f"Seeding complete in {elapsed:.2f}s")
    for table, count in inserted.items():
        print(f"  {table}: {count}")


def main():
    parser = argparse.ArgumentParser(description="Seed the forum database")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=settings.LOG_FORMAT)
    asyncio.run(seed(reset=args.reset))


if __name__ == "__main__":
    main()
