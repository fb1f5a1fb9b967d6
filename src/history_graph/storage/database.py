"""SQLite storage handle shared by the visit and tab stores."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from history_graph.exceptions import ConstraintViolationError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(
    os.environ.get(
        "HISTORY_GRAPH_DB_PATH",
        str(Path.home() / ".history-graph" / "history.db"),
    )
).expanduser()
DEFAULT_TIMEOUT = float(os.environ.get("HISTORY_GRAPH_DB_TIMEOUT", "5.0"))

MEMORY = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS visits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL,
    icon TEXT NOT NULL DEFAULT '',
    creation_cause TEXT NOT NULL,
    parent_id INTEGER,
    replaced_parent INTEGER,
    created_at TEXT NOT NULL,
    children TEXT NOT NULL DEFAULT '[]',
    end_cause TEXT,
    ended_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_visits_parent ON visits(parent_id);

CREATE TABLE IF NOT EXISTS tabs (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    tab_id INTEGER NOT NULL UNIQUE,
    current_visit INTEGER,
    created_by_visit INTEGER,
    tab_position INTEGER NOT NULL CHECK (tab_position >= 0)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_tabs_position ON tabs(tab_position);
"""


class Database:
    """An open history database.

    Create with ``db = await Database.open(path)`` and pass it to the stores.
    All access goes through :meth:`transaction`, which holds a lock for its
    whole duration so that no other coroutine sees a half-applied write.
    """

    def __init__(self, conn: aiosqlite.Connection, path: str):
        self._conn: aiosqlite.Connection | None = conn
        self.path = path
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        path: str | Path | None = None,
        timeout: float | None = None,
    ) -> Database:
        """Open (creating if needed) the database and apply the schema."""
        db_path = str(path or DEFAULT_DB_PATH)
        if db_path != MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            # Autocommit; transactions are opened explicitly.
            conn = await aiosqlite.connect(
                db_path,
                timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
                isolation_level=None,
            )
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot open history database at {db_path}: {e}") from e

        try:
            conn.row_factory = aiosqlite.Row
            await conn.executescript(SCHEMA)
        except aiosqlite.Error as e:
            await conn.close()
            raise StorageError(f"Failed to initialize history database: {e}") from e

        logger.info("History database opened at %s", db_path)
        return cls(conn, db_path)

    async def close(self) -> None:
        """Close the connection once any running transaction has finished."""
        async with self._lock:
            if self._conn is None:
                return
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> Database:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _conn_or_raise(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("History database is closed")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed statements as one SQLite transaction.

        Commits on normal exit and rolls back on any exception. SQLite
        integrity failures surface as ConstraintViolationError, every other
        database failure as StorageError.
        """
        async with self._lock:
            conn = self._conn_or_raise()
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except aiosqlite.Error as e:
                raise StorageError(f"Failed to begin transaction: {e}") from e

            try:
                yield conn
            except aiosqlite.IntegrityError as e:
                await self._rollback(conn)
                raise ConstraintViolationError(f"Constraint violated: {e}") from e
            except aiosqlite.Error as e:
                await self._rollback(conn)
                raise StorageError(f"Database operation failed: {e}") from e
            except BaseException:
                await self._rollback(conn)
                raise

            try:
                await conn.execute("COMMIT")
            except aiosqlite.Error as e:
                await self._rollback(conn)
                raise StorageError(f"Failed to commit transaction: {e}") from e

    @staticmethod
    async def _rollback(conn: aiosqlite.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            await conn.execute("ROLLBACK")
        except aiosqlite.Error as e:
            logger.error("Rollback failed: %s", e)
