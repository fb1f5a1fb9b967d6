"""Tab lifecycle operations that write through the visit and tab stores."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from history_graph.exceptions import NotFoundError, TabNotFoundError, VisitNotFoundError
from history_graph.host import BaseTabHost
from history_graph.models import (
    Creation,
    CreationCause,
    EndCause,
    Page,
    RealTab,
    ReconciliationResult,
    TabMove,
    TabRecord,
    Visit,
    utcnow,
)
from history_graph.move_chain import MoveChainResolver
from history_graph.reconcile import reconcile_store
from history_graph.storage import TabStore, VisitStore

logger = logging.getLogger(__name__)


class TabManager:
    """Keeps the navigation graph and the tab records in step with the host.

    Events for the same tab id must be delivered one at a time; events for
    different tabs may interleave.

    Args:
        visits: Store for visit nodes.
        tabs: Store for live tab records.
        host: The browser, queried for tab positions and the startup snapshot.
    """

    def __init__(self, visits: VisitStore, tabs: TabStore, host: BaseTabHost):
        self.visits = visits
        self.tabs = tabs
        self.host = host
        self.resolver = MoveChainResolver(tabs, host)

    async def import_tabs(self, snapshot: Iterable[RealTab] | None = None) -> ReconciliationResult:
        """Recover tab records after a (re)start.

        Records that still match an open tab are kept under the tab's new id;
        every other open tab gets a root visit with cause ``import``.
        """
        if snapshot is None:
            snapshot = await self.host.query_tabs()
        result = await reconcile_store(snapshot, self.tabs, self.visits)

        for tab in result.unknown:
            visit_id = None
            if tab.page is not None:
                visit_id = await self.visits.create_visit(
                    tab.page,
                    Creation(cause=CreationCause.IMPORT, time=utcnow()),
                )
            await self.tabs.put(TabRecord(
                tab_id=tab.tab_id,
                tab_position=tab.position,
                current_visit=visit_id,
                created_by_visit=None,
            ))
        return result

    async def create_tab(
        self,
        tab_id: int,
        opener_tab_id: int | None,
        tab_position: int,
    ) -> None:
        """Record a newly opened tab; it has no page yet."""
        created_by = None
        if opener_tab_id is not None:
            opener = await self.tabs.get(opener_tab_id)
            created_by = opener.current_visit if opener else None

        await self.tabs.put(TabRecord(
            tab_id=tab_id,
            tab_position=tab_position,
            current_visit=None,
            created_by_visit=created_by,
        ))

    async def close_tab(self, tab_id: int) -> None:
        """End the tab's current visit and forget the tab.

        A tab we have no record of is already consistent; it is logged and
        skipped.
        """
        try:
            await self._close_tab(tab_id)
        except NotFoundError as e:
            logger.warning("Close of tab %s skipped: %s", tab_id, e)

    async def _close_tab(self, tab_id: int) -> None:
        record = await self.tabs.get(tab_id)
        if record is None:
            raise TabNotFoundError(tab_id)

        # The visit is ended before its tab record goes away.
        if record.current_visit is not None:
            try:
                await self.visits.update_visit(
                    record.current_visit, lambda visit: visit.close(EndCause.MANUAL)
                )
            except VisitNotFoundError:
                logger.warning(
                    "Visit %s of closed tab %s not found", record.current_visit, tab_id
                )

        await self.tabs.delete(tab_id)

    async def navigate_to(self, tab_id: int, page: Page) -> int | None:
        """Record a completed top-level navigation in a tab.

        The first page in a tab descends from the visit that opened the tab
        (if any); later pages descend from, and end, the tab's previous visit.

        Returns the new visit id, or None when the tab (or the parent visit)
        has no record, which is logged and otherwise ignored.
        """
        try:
            return await self._navigate_to(tab_id, page)
        except NotFoundError as e:
            logger.warning("Navigation in tab %s not recorded: %s", tab_id, e)
            return None

    async def _navigate_to(self, tab_id: int, page: Page) -> int:
        record = await self.tabs.get(tab_id)
        if record is None:
            raise TabNotFoundError(tab_id)

        is_new_tab = record.current_visit is None
        parent_id = record.created_by_visit if is_new_tab else record.current_visit

        now = utcnow()
        if parent_id is not None:
            # Visits are never deleted, so a parent seen here stays.
            if await self.visits.get_visit(parent_id) is None:
                raise VisitNotFoundError(parent_id)
            creation = Creation(
                cause=CreationCause.NAVIGATION,
                time=now,
                parent_id=parent_id,
                replaced_parent=not is_new_tab,
            )
        else:
            creation = Creation(cause=CreationCause.MANUAL, time=now)

        visit_id = await self.visits.create_visit(page, creation)
        await self.tabs.put(replace(record, current_visit=visit_id))

        if parent_id is not None:
            def attach(parent: Visit) -> Visit:
                parent = parent.add_child(visit_id)
                if not is_new_tab:
                    parent = parent.close(EndCause.NAVIGATION, now)
                return parent

            await self.visits.update_visit(parent_id, attach)

        return visit_id

    async def move_tab_manual(self, tab_id: int, new_index: int) -> list[TabMove]:
        """Apply a user-initiated move and every shift it caused."""
        return await self.resolver.move_tab(tab_id, new_index)
