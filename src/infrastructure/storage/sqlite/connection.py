"""
Bounded aiosqlite connection pool for the order database.

Connections run in autocommit mode. Writes go through ``transaction()``,
which opens with BEGIN IMMEDIATE so concurrent saves queue on SQLite's
writer lock instead of failing on lock upgrade (document numbers are
allocated as MAX + 1 inside the transaction).
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from src.config import get_logger, get_settings

logger = get_logger(__name__)


@dataclass
class PoolHealth:
    """Result of a database round trip."""

    available: bool
    latency_ms: float | None = None
    error: str | None = None


class ConnectionPool:
    """
    Up to ``pool_size`` connections to one database file.

    Connections are opened on demand; once the limit is reached callers wait
    for a connection to be released.
    """

    def __init__(self, db_path: Path, pool_size: int = 5, busy_timeout: int = 30000):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        self._opened: list[aiosqlite.Connection] = []
        self._opening = asyncio.Lock()

    @property
    def in_use(self) -> int:
        return len(self._opened) - self._idle.qsize()

    async def initialize(self) -> None:
        """Open the first connection so a bad path fails at startup."""
        async with self.acquire():
            pass
        logger.info("connection_pool_initialized", db_path=str(self.db_path), pool_size=self.pool_size)

    async def _open(self) -> aiosqlite.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        for pragma in (
            "journal_mode=WAL",
            "synchronous=NORMAL",
            f"busy_timeout={self.busy_timeout}",
            "foreign_keys=ON",
        ):
            await conn.execute(f"PRAGMA {pragma}")
        return conn

    async def _checkout(self) -> aiosqlite.Connection:
        if self._idle.empty():
            async with self._opening:
                if len(self._opened) < self.pool_size:
                    conn = await self._open()
                    self._opened.append(conn)
                    logger.debug("sqlite_connection_opened", open_connections=len(self._opened))
                    return conn
        return await self._idle.get()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection for the duration of the block.

        Usage:
            async with pool.acquire() as conn:
                await conn.execute(...)
        """
        conn = await self._checkout()
        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection inside a write transaction, committed when the block exits cleanly."""
        async with self.acquire() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception:
                await conn.execute("ROLLBACK")
                raise
            await conn.execute("COMMIT")

    async def check_health(self) -> PoolHealth:
        """Time a trivial query."""
        started = time.perf_counter()
        try:
            async with self.acquire() as conn:
                await (await conn.execute("SELECT 1")).fetchone()
        except (aiosqlite.Error, OSError) as e:
            logger.warning("database_health_check_failed", error=str(e))
            return PoolHealth(available=False, error=str(e))
        return PoolHealth(available=True, latency_ms=round((time.perf_counter() - started) * 1000, 2))

    async def close(self) -> None:
        async with self._opening:
            opened, self._opened = self._opened, []
            self._idle = asyncio.Queue()
        for conn in opened:
            await conn.close()
        logger.info("connection_pool_closed", closed=len(opened))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Process-wide pool built from storage settings."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(storage.db_path, storage.pool_size, storage.busy_timeout)
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    """Read connection from the process-wide pool."""
    async with (await get_pool()).acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Write transaction on the process-wide pool."""
    async with (await get_pool()).transaction() as conn:
        yield conn
