"""
Pytest Configuration and Fixtures

Shared fixtures for unit and API tests. Everything runs offline against
SQLite (aiosqlite); no Postgres, Google or AI provider is contacted.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults — MUST be before any chimera_sync imports.
#
# 1. Load .env first so that local overrides are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "DATABASE_URL_OVERRIDE": "sqlite+aiosqlite:///:memory:",
    "GOOGLE_CLIENT_ID": "test-client-id.apps.googleusercontent.com",
    "AI_API_KEY": "",
    "LOG_LEVEL": "WARNING",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from chimera_sync.core.config import Settings  # noqa: E402
from chimera_sync.models import Base  # noqa: E402


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh in-memory SQLite engine with all tables created.

    StaticPool keeps the single in-memory connection alive across sessions.
    """
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as s:
        yield s


@pytest.fixture
def small_limits_settings() -> Settings:
    """Settings with tiny free-plan ceilings so boundaries are cheap to reach."""
    return Settings(
        FREE_MAX_NOTES=3,
        FREE_MAX_CHARS_PER_NOTE=100,
        FREE_MAX_STORAGE_BYTES=2_000,
    )
