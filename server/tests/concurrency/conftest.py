"""Race tests run on a file database so every session owns its connection."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from tourbook.core.database import Base, engine_options


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite engine; overrides the shared in-memory one."""
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'tourbook.db'}"
    engine = create_async_engine(database_url, echo=False, **engine_options(database_url))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()
