"""Async SQLite engine and transactional sessions.

Hey future me - SQLite is the only backend here. Two things it gets wrong by default:
foreign keys are OFF per connection (so user deletes wouldn't cascade to upload_logs and
auth_sessions), and a concurrent writer fails immediately instead of waiting. Both are
fixed on every new DBAPI connection below.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from musicdrop.config import Settings

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


class Database:
    """Owns the engine; hands out one session per transaction."""

    def __init__(self, settings: Settings) -> None:
        db_settings = settings.database
        connect_args: dict[str, Any] = {}
        if _is_sqlite(db_settings.url):
            # aiosqlite runs the connection in its own thread
            connect_args = {
                "check_same_thread": False,
                "timeout": db_settings.busy_timeout_seconds,
            }

        self._engine: AsyncEngine = create_async_engine(
            db_settings.url,
            echo=db_settings.echo,
            connect_args=connect_args,
        )
        if _is_sqlite(db_settings.url):
            event.listen(self._engine.sync_engine, "connect", _on_sqlite_connect)

        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.debug("Database engine created for %s", self._engine.url.render_as_string())

    @property
    def engine(self) -> AsyncEngine:
        """The underlying async engine."""
        return self._engine

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: commit when the block exits cleanly, roll back otherwise.

        Yields:
            AsyncSession bound to this transaction
        """
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                # BaseException so a cancelled request doesn't leave a half-open transaction
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create any missing tables from the ORM models."""
        from musicdrop.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self._engine.dispose()


def _on_sqlite_connect(dbapi_conn: Any, _connection_record: Any) -> None:
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()
