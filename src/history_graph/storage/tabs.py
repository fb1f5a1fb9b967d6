"""Persistence for live tab records, with a unique index on tab position."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import aiosqlite

from history_graph.exceptions import TabNotFoundError
from history_graph.models import TabMove, TabRecord
from history_graph.storage.database import Database

logger = logging.getLogger(__name__)

_COLUMNS = "seq, tab_id, current_visit, created_by_visit, tab_position"


class TabStore:
    """One record per live tab, keyed by the host's (transient) tab id.

    No two records share a ``tab_position``; the unique index rejects any
    write that would break that, and such a write surfaces as
    ConstraintViolationError. A tab id has a single writer at a time.
    """

    def __init__(self, db: Database):
        self.db = db

    async def get(self, tab_id: int) -> TabRecord | None:
        async with self.db.transaction() as conn:
            row = await _select_one(conn, "tab_id = ?", tab_id)
        return _row_to_record(row) if row else None

    async def get_by_position(self, position: int) -> TabRecord | None:
        async with self.db.transaction() as conn:
            row = await _select_one(conn, "tab_position = ?", position)
        return _row_to_record(row) if row else None

    async def get_all(self) -> list[TabRecord]:
        """All records in insertion order (not position order)."""
        async with self.db.transaction() as conn:
            rows = await conn.execute_fetchall(f"SELECT {_COLUMNS} FROM tabs ORDER BY seq")
        return [_row_to_record(row) for row in rows]

    async def put(self, record: TabRecord) -> None:
        """Insert or overwrite the record for ``record.tab_id``."""
        async with self.db.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO tabs (tab_id, current_visit, created_by_visit, tab_position)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(tab_id) DO UPDATE SET
                    current_visit = excluded.current_visit,
                    created_by_visit = excluded.created_by_visit,
                    tab_position = excluded.tab_position
                """,
                (
                    record.tab_id,
                    record.current_visit,
                    record.created_by_visit,
                    record.tab_position,
                ),
            )

    async def delete(self, tab_id: int) -> None:
        async with self.db.transaction() as conn:
            cursor = await conn.execute("DELETE FROM tabs WHERE tab_id = ?", (tab_id,))
            deleted = cursor.rowcount
            await cursor.close()
        if not deleted:
            raise TabNotFoundError(tab_id)

    async def replace_all(self, records: Iterable[TabRecord]) -> None:
        """Clear the table and insert ``records``, all in one transaction."""
        records = list(records)
        async with self.db.transaction() as conn:
            await conn.execute("DELETE FROM tabs")
            await conn.executemany(
                """
                INSERT INTO tabs (tab_id, current_visit, created_by_visit, tab_position)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (r.tab_id, r.current_visit, r.created_by_visit, r.tab_position)
                    for r in records
                ],
            )
        logger.debug("Replaced tab table with %d records", len(records))

    async def apply_move_chain(
        self,
        moves: Sequence[TabMove],
        evict: int | None = None,
    ) -> None:
        """Apply a sequence of position changes as one transaction.

        ``moves`` must be ordered so that each target position has already
        been vacated when it is written. For a circular chain, pass the id of
        the tab that started it as ``evict``: its record is removed before
        the other moves are written and re-inserted, in its old insertion
        slot, with its new position once they are all applied.

        Only ``tab_position`` changes; every other field is re-read from the
        stored record. Any failure rolls the whole chain back.
        """
        async with self.db.transaction() as conn:
            evicted: aiosqlite.Row | None = None
            evicted_move: TabMove | None = None
            if evict is not None:
                evicted = await _select_one(conn, "tab_id = ?", evict)
                if evicted is None:
                    raise TabNotFoundError(evict)
                await conn.execute("DELETE FROM tabs WHERE tab_id = ?", (evict,))

            for move in moves:
                if move.tab_id == evict:
                    evicted_move = move
                    continue
                row = await _select_one(conn, "tab_id = ?", move.tab_id)
                if row is None:
                    raise TabNotFoundError(move.tab_id)
                await conn.execute(
                    "UPDATE tabs SET tab_position = ? WHERE seq = ?",
                    (move.tab_position, row["seq"]),
                )

            if evicted is not None:
                position = (
                    evicted_move.tab_position if evicted_move else evicted["tab_position"]
                )
                await conn.execute(
                    """
                    INSERT INTO tabs (seq, tab_id, current_visit, created_by_visit, tab_position)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        evicted["seq"],
                        evicted["tab_id"],
                        evicted["current_visit"],
                        evicted["created_by_visit"],
                        position,
                    ),
                )
        logger.debug("Applied move chain of %d moves (evict=%s)", len(moves), evict)


async def _select_one(
    conn: aiosqlite.Connection, where: str, value: int
) -> aiosqlite.Row | None:
    rows = await conn.execute_fetchall(f"SELECT {_COLUMNS} FROM tabs WHERE {where}", (value,))
    return rows[0] if rows else None


def _row_to_record(row: aiosqlite.Row) -> TabRecord:
    return TabRecord(
        tab_id=row["tab_id"],
        tab_position=row["tab_position"],
        current_visit=row["current_visit"],
        created_by_visit=row["created_by_visit"],
    )
