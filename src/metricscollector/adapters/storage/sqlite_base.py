"""Shared aiosqlite connection handling for SQLite adapters."""

import asyncio
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

_TABLE_NAME = re.compile(r"^[A-Za-z0-9_\-]+$")


def quote_table(name: str) -> str:
    """Return ``name`` as a quoted SQL identifier.

    Raises:
        ValueError: If the name contains characters other than letters,
            digits, underscores or hyphens.
    """
    if not _TABLE_NAME.match(name):
        raise ValueError(f"invalid table name: {name!r}")
    return f'"{name}"'


class AsyncConnectionManager:
    """aiosqlite connections shared by SQLiteCountingStore and SQLiteMetricsSink.

    Each adapter passes its own schema (the activities document table or the
    metrics table), which is created on first use. For :memory: databases a
    persistent connection is kept, since SQLite in-memory databases are
    connection-scoped; the owning adapter releases it through ``close()``.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._initialized = False
        self._init_lock: asyncio.Lock | None = None
        self._persistent_conn: aiosqlite.Connection | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the initialization lock (lazy to avoid event loop issues)."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        return self._init_lock

    @property
    def _is_memory(self) -> bool:
        return self._db_path == ":memory:"

    async def _ensure_initialized(self) -> None:
        """Create the schema once."""
        if self._initialized:
            return
        async with self._get_lock():
            if self._initialized:
                return
            if self._is_memory:
                self._persistent_conn = await aiosqlite.connect(":memory:")
                await self._persistent_conn.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._initialized = True

    async def _get_connection(self) -> aiosqlite.Connection:
        await self._ensure_initialized()
        if self._is_memory:
            if self._persistent_conn is None:
                raise RuntimeError("Memory database connection not initialized")
            return self._persistent_conn
        return await aiosqlite.connect(self._db_path)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Context manager for a database connection.

        File-based connections are closed on exit; the :memory: connection
        stays open until ``close()``.
        """
        db = await self._get_connection()
        try:
            yield db
        finally:
            if not self._is_memory:
                await db.close()

    async def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        if self._persistent_conn is not None:
            await self._persistent_conn.close()
            self._persistent_conn = None
            self._initialized = False
