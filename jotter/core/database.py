from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from jotter.core.config import settings


def build_engine(database_url: str):
    """Create the async engine for the configured database"""
    engine_kwargs = {"echo": False, "future": True}
    if database_url.startswith("sqlite"):
        # aiosqlite connections belong to the loop that opened them
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_pre_ping"] = True
    return create_async_engine(database_url, **engine_kwargs)


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the duration of a request"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create missing tables"""
    # Import models so they are registered on the metadata
    from jotter import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
