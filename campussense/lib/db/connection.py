"""SQLite access for CampusSense.

Every query goes through ``get_db()``, which hands out one of two kinds of
connection:

- the ingest, notification and report services call ``init_db()`` once at
  startup and then share a single persistent connection (WAL mode, schema
  applied on open) until ``close_db()``;
- the web server never calls ``init_db()``; its requests borrow connections
  from a small pool, and the lifespan hook creates the schema with
  ``ensure_schema()``.

Callers do not need to know which one they got::

    async with get_db() as db:
        rows = await db.fetchall("SELECT * FROM notifications")
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from functools import cache
from pathlib import Path
from typing import Any, cast

import aiosqlite

from campussense.lib.config import get_settings
from campussense.lib.db.types import SQLParams
from campussense.lib.exceptions import DatabaseNotConnectedError
from campussense.lib.utils import register_sqlite_adapters
from campussense.logging import get_logger

_logger = get_logger("lib.db")

SQL_DIR = Path(__file__).resolve().parent.parent / "sql"

# Tables first, then the indexes that depend on them
SCHEMA_TEMPLATES = (
    "init_sensor_data_table.sql",
    "idx_sensor_data.sql",
    "init_settings_table.sql",
    "init_notifications_table.sql",
    "init_alert_logs_table.sql",
    "init_chat_subscribers_table.sql",
    "init_push_subscriptions_table.sql",
)

# Applied to the persistent connection; db_cleanup relies on incremental vacuum
_SERVICE_PRAGMAS = "PRAGMA journal_mode=WAL;\nPRAGMA auto_vacuum=INCREMENTAL;"

POOL_SIZE = 5


@cache
def load_template(name: str) -> str:
    """Return the text of a SQL file from ``SQL_DIR`` (cached)."""
    return (SQL_DIR / name).read_text()


def _row_as_dict(cursor: aiosqlite.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    columns = [col[0] for col in cursor.description or ()]
    return dict(zip(columns, row, strict=False))


class Database:
    """One aiosqlite connection returning rows as dicts.

    Writes commit immediately unless they run inside ``transaction()``.
    """

    def __init__(self, db_path: str | None = None):
        self._db_path = db_path or get_settings().db_path
        self._conn: aiosqlite.Connection | None = None
        self._batching = False

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseNotConnectedError()
        return self._conn

    async def connect(self) -> None:
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(
            self._db_path, timeout=get_settings().db_timeout_sec
        )
        self._conn.row_factory = _row_as_dict  # type: ignore[assignment]

    async def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Group writes into one commit; any exception rolls all of them back."""
        conn = self.conn
        await conn.execute("BEGIN")
        self._batching = True
        try:
            yield
        except Exception:
            await conn.rollback()
            raise
        else:
            await conn.commit()
        finally:
            self._batching = False

    async def _write(self, sql: str, params: SQLParams) -> aiosqlite.Cursor:
        cursor = await self.conn.execute(sql, params)
        if not self._batching:
            await self.conn.commit()
        return cursor

    async def execute(self, sql: str, params: SQLParams = ()) -> int:
        """Run a write statement and return the affected row count."""
        return (await self._write(sql, params)).rowcount

    async def insert(self, sql: str, params: SQLParams = ()) -> int:
        """Run an INSERT and return the id of the new row."""
        return cast(int, (await self._write(sql, params)).lastrowid)

    async def executemany(self, sql: str, params_seq: Sequence[SQLParams]) -> None:
        await self.conn.executemany(sql, params_seq)
        if not self._batching:
            await self.conn.commit()

    async def executescript(self, sql: str) -> None:
        await self.conn.executescript(sql)

    async def fetchone(self, sql: str, params: SQLParams = ()) -> dict[str, Any] | None:
        async with self.conn.execute(sql, params) as cursor:
            return cast(dict[str, Any] | None, await cursor.fetchone())

    async def fetchall(self, sql: str, params: SQLParams = ()) -> list[dict[str, Any]]:
        async with self.conn.execute(sql, params) as cursor:
            return cast(list[dict[str, Any]], await cursor.fetchall())


class ConnectionPool:
    """Reusable connections for request handlers, at most ``size`` in use."""

    def __init__(self, size: int = POOL_SIZE) -> None:
        self._size = size
        self._idle: list[Database] = []
        self._slots: asyncio.Semaphore | None = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Database]:
        # Created on first use so it binds to the running event loop
        if self._slots is None:
            self._slots = asyncio.Semaphore(self._size)
        async with self._slots:
            db = self._idle.pop() if self._idle else Database()
            try:
                await db.connect()
                yield db
            except Exception:
                await db.close()
                raise
            finally:
                self._idle.append(db)

    async def close(self) -> None:
        idle, self._idle = self._idle, []
        self._slots = None
        for db in idle:
            await db.close()
        if idle:
            _logger.info("Closed %d pooled connections", len(idle))


_service_db: Database | None = None
_pool = ConnectionPool()


@asynccontextmanager
async def get_db() -> AsyncIterator[Database]:
    """Yield the service connection if ``init_db()`` ran, else a pooled one."""
    if _service_db is not None:
        yield _service_db
        return
    async with _pool.acquire() as db:
        yield db


async def _apply_schema(db: Database) -> None:
    for name in SCHEMA_TEMPLATES:
        await db.executescript(load_template(name))


async def ensure_schema() -> None:
    """Create any missing tables and indexes."""
    register_sqlite_adapters()
    async with get_db() as db:
        await _apply_schema(db)


async def init_db() -> None:
    """Open the persistent connection used by the long-running services."""
    global _service_db
    register_sqlite_adapters()
    if _service_db is None:
        _service_db = Database()
        await _service_db.connect()
        _logger.info("Opened database %s", get_settings().db_path)
    await _service_db.executescript(_SERVICE_PRAGMAS)
    await _apply_schema(_service_db)


async def close_db() -> None:
    """Close the persistent connection and every pooled one."""
    global _service_db
    db, _service_db = _service_db, None
    if db is not None:
        await db.close()
        _logger.info("Closed database connection")
    await _pool.close()
