"""Shared fixtures.

The environment is set before anything imports ``bodymap`` so the settings
object and the module-level database engine point at a throwaway database.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="bodymap-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/bodymap.db")
os.environ.setdefault("REQUEST_TIMEOUT_SECONDS", "0.5")
os.environ.setdefault("SYNC_MAX_GENERATIONS", "10")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import bodymap.models  # noqa: F401  registers the tables
from bodymap.core.database import Base


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the in-memory database."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
