"""Async engine, session factory and transaction scope."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, StaticPool

from .config import settings


def engine_options(database_url: str) -> dict[str, Any]:
    """
    Pool settings for a database URL.

    An in-memory SQLite database lives only as long as its connection, so it
    runs on one shared connection. File SQLite opens a connection per session
    so each transaction commits or rolls back on its own. Server databases
    get a checked pool.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        return {"poolclass": NullPool}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    **engine_options(settings.database_url),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit everything issued inside the block, or roll it all back.

    A booking status flip and the matching ledger update run in one block,
    so either both are stored or neither is. Rolling back expires every
    instance in the session; reload what you need by ID afterwards.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


get_db = get_async_session


async def init_db() -> None:
    """Create missing tables; migrations own the schema outside development."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
