"""
Database Layer

Async SQLAlchemy 2.0 setup shared by every request.

Design:
    - Lazy initialization: engine created on first use, not at import.
    - A background monitor probes the store at startup and retries on a
      fixed interval until it answers. The app serves requests meanwhile;
      store-backed routes fail fast with 503 until the probe succeeds.
    - get_db: FastAPI dependency that yields a request-scoped session.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import suppress
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from chimera_sync.core.config import settings
from chimera_sync.core.exceptions import StoreUnavailableError
from chimera_sync.models.base import Base

logger = logging.getLogger(__name__)

# Module-level singletons (lazy)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_monitor: asyncio.Task[None] | None = None


@dataclass
class DatabaseState:
    """Connectivity as last observed by the startup monitor."""

    connected: bool = False
    error: str | None = None


db_state = DatabaseState()


def get_engine() -> AsyncEngine:
    """Get or create the async SQLAlchemy engine (singleton)."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_async_engine(settings.DATABASE_URL, echo=False)
        logger.info("Database engine created (%s)", _engine.url.render_as_string())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory (singleton)."""
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        # expire_on_commit=False: no implicit I/O when reading attributes after commit
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def ping_database() -> None:
    """Run a trivial query; raises on any connectivity failure."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def connect_with_retry(interval: float | None = None) -> None:
    """
    Probe the store until it answers, sleeping ``interval`` seconds between tries.

    Updates ``db_state`` on every attempt so /health reflects the latest error.
    Runs forever until success or cancellation.
    """
    delay = interval if interval is not None else settings.DB_RETRY_INTERVAL_SECONDS
    attempt = 0
    while True:
        attempt += 1
        try:
            await ping_database()
        except Exception as e:
            db_state.connected = False
            db_state.error = str(e) or type(e).__name__
            logger.warning(
                "Waiting for database (attempt %d)... Error: %s", attempt, db_state.error
            )
            await asyncio.sleep(delay)
            continue

        db_state.connected = True
        db_state.error = None
        logger.info("Database connection established")
        return


def start_connection_monitor() -> asyncio.Task[None]:
    """Schedule ``connect_with_retry`` on the running loop unless one is already running."""
    global _monitor  # noqa: PLW0603
    if _monitor is None or _monitor.done():
        _monitor = asyncio.create_task(connect_with_retry(), name="db-connect")
    return _monitor


async def stop_connection_monitor() -> None:
    global _monitor  # noqa: PLW0603
    if _monitor is not None and not _monitor.done():
        _monitor.cancel()
        with suppress(asyncio.CancelledError):
            await _monitor
    _monitor = None


def mark_unavailable(error: BaseException) -> None:
    """Record a lost connection and restart the background reconnect loop."""
    db_state.connected = False
    db_state.error = str(error) or type(error).__name__
    start_connection_monitor()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a request-scoped database session.

    Raises:
        StoreUnavailableError: If the store has not answered the startup probe.
    """
    if not db_state.connected:
        raise StoreUnavailableError()
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def dispose_engine() -> None:
    """Dispose the engine at application shutdown."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        db_state.connected = False
        logger.info("Database engine disposed")


# Re-export Base for Alembic migrations compatibility
__all__ = [
    "Base",
    "DatabaseState",
    "connect_with_retry",
    "db_state",
    "dispose_engine",
    "get_db",
    "get_engine",
    "get_session_factory",
    "mark_unavailable",
    "start_connection_monitor",
    "stop_connection_monitor",
]
