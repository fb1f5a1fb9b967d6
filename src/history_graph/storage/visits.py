"""Persistence for visit nodes of the navigation graph."""

from __future__ import annotations

import json
import logging
from typing import Callable

import aiosqlite
from dateutil.parser import isoparse

from history_graph.exceptions import VisitNotFoundError
from history_graph.models import (
    Creation,
    CreationCause,
    End,
    EndCause,
    Page,
    Visit,
)
from history_graph.storage.database import Database

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, title, url, icon, creation_cause, parent_id, replaced_parent,
    created_at, children, end_cause, ended_at
"""


class VisitStore:
    """Append-mostly store of visits.

    Only ``children`` and ``end`` ever change after creation. Updates are an
    explicit read, pure transform, write sequence run inside one transaction.
    """

    def __init__(self, db: Database):
        self.db = db

    async def create_visit(self, page: Page, creation: Creation) -> int:
        """Insert a new open visit with no children; returns its id."""
        async with self.db.transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO visits (
                    title, url, icon, creation_cause, parent_id,
                    replaced_parent, created_at, children
                ) VALUES (?, ?, ?, ?, ?, ?, ?, '[]')
                """,
                (
                    page.title,
                    page.url,
                    page.icon,
                    creation.cause.value,
                    creation.parent_id,
                    _bool_to_db(creation.replaced_parent),
                    creation.time.isoformat(),
                ),
            )
            visit_id = cursor.lastrowid
            await cursor.close()
        logger.debug("Created visit %s (%s) for %s", visit_id, creation.cause.value, page.url)
        return visit_id

    async def get_visit(self, visit_id: int) -> Visit | None:
        async with self.db.transaction() as conn:
            rows = await conn.execute_fetchall(
                f"SELECT {_COLUMNS} FROM visits WHERE id = ?", (visit_id,)
            )
        return _row_to_visit(rows[0]) if rows else None

    async def get_all(self) -> list[Visit]:
        """All visits in creation order."""
        async with self.db.transaction() as conn:
            rows = await conn.execute_fetchall(f"SELECT {_COLUMNS} FROM visits ORDER BY id")
        return [_row_to_visit(row) for row in rows]

    async def update_visit(self, visit_id: int, transform: Callable[[Visit], Visit]) -> Visit:
        """Read a visit, apply a pure ``transform`` and write the result back.

        The read and the write share one transaction, so concurrent updates
        of the same visit from different tabs are serialized rather than
        overwriting each other. Only ``children`` and ``end`` are written.
        Returns the updated visit.
        """
        async with self.db.transaction() as conn:
            rows = await conn.execute_fetchall(
                f"SELECT {_COLUMNS} FROM visits WHERE id = ?", (visit_id,)
            )
            if not rows:
                raise VisitNotFoundError(visit_id)
            visit = transform(_row_to_visit(rows[0]))
            await conn.execute(
                """
                UPDATE visits
                SET children = ?, end_cause = ?, ended_at = ?
                WHERE id = ?
                """,
                (
                    json.dumps(list(visit.children)),
                    visit.end.cause.value if visit.end else None,
                    visit.end.time.isoformat() if visit.end else None,
                    visit_id,
                ),
            )
        return visit


def _bool_to_db(value: bool | None) -> int | None:
    if value is None:
        return None
    return 1 if value else 0


def _row_to_visit(row: aiosqlite.Row) -> Visit:
    end = None
    if row["end_cause"]:
        end = End(cause=EndCause(row["end_cause"]), time=isoparse(row["ended_at"]))
    replaced = row["replaced_parent"]
    return Visit(
        id=row["id"],
        page=Page(title=row["title"], url=row["url"], icon=row["icon"]),
        creation=Creation(
            cause=CreationCause(row["creation_cause"]),
            time=isoparse(row["created_at"]),
            parent_id=row["parent_id"],
            replaced_parent=None if replaced is None else bool(replaced),
        ),
        children=tuple(json.loads(row["children"] or "[]")),
        end=end,
    )
