"""
Database manager for the market engine.

SQLite (via aiosqlite) by default; any SQLAlchemy async URL can be supplied
through settings. One DBM per process; sessions are request scoped.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from selfresolve.config import Settings

SQLITE_BUSY_TIMEOUT_MS = 5000


# WAL, busy timeout and FK enforcement are per-connection pragmas, so they are
# set on each connect.
def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def to_sync_url(url: str) -> str:
    """Swap an async driver for its sync counterpart (used by migrations)."""
    replacements = {
        "sqlite+aiosqlite": "sqlite",
        "postgresql+asyncpg": "postgresql",
    }
    for async_prefix, sync_prefix in replacements.items():
        if url.startswith(async_prefix + ":"):
            return sync_prefix + url[len(async_prefix):]
    return url


class DBM:
    def __init__(self, settings: Settings, url: str | None = None):
        self.settings = settings
        self.url = url or settings.database_url()

        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=settings.database.echo,
            future=True,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", set_sqlite_pragma)

        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    async def dispose(self) -> None:
        await self.engine.dispose()
