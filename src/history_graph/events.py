"""Dispatch host tab events to the tab manager."""

from __future__ import annotations

import logging
from typing import Awaitable

from history_graph.exceptions import HistoryGraphError
from history_graph.manager import TabManager
from history_graph.parser import parse_page, parse_tab

logger = logging.getLogger(__name__)


class TabEventHandler:
    """Entry points for the host's tab notifications.

    Payloads are shaped like WebExtension ``tabs.Tab`` objects. Each handler
    returns True on success and False on failure; failures are logged and
    the last one per event kind is kept in ``last_errors``. Nothing is
    retried here.
    """

    def __init__(self, manager: TabManager):
        self.manager = manager
        self.last_errors: dict[str, str] = {}

    async def on_startup(self, raw_tabs: list[dict]) -> bool:
        tabs = []
        for raw in raw_tabs:
            tab = parse_tab(raw)
            if tab is None:
                logger.warning("Skipping malformed tab in startup snapshot: %r", raw)
                continue
            tabs.append(tab)
        return await self._run("startup", self.manager.import_tabs(tabs))

    async def on_created(self, raw_tab: dict) -> bool:
        tab = parse_tab(raw_tab)
        if tab is None:
            return self._reject("created", f"malformed tab payload: {raw_tab!r}")
        return await self._run(
            "created",
            self.manager.create_tab(tab.tab_id, tab.opener_tab_id, tab.position),
        )

    async def on_removed(self, tab_id: int) -> bool:
        return await self._run("removed", self.manager.close_tab(tab_id))

    async def on_moved(self, tab_id: int, move_info: dict) -> bool:
        to_index = move_info.get("toIndex")
        if to_index is None:
            return self._reject("moved", f"move of tab {tab_id} has no toIndex")
        return await self._run("moved", self.manager.move_tab_manual(tab_id, int(to_index)))

    async def on_updated(self, tab_id: int, change_info: dict, raw_tab: dict) -> bool:
        # Only a finished load is a committed navigation.
        if change_info.get("status") != "complete":
            return True
        page = parse_page(raw_tab)
        if page is None:
            return self._reject("updated", f"tab {tab_id} finished loading without a URL")
        return await self._run("updated", self.manager.navigate_to(tab_id, page))

    async def _run(self, event: str, operation: Awaitable) -> bool:
        try:
            await operation
        except HistoryGraphError as e:
            return self._reject(event, str(e))
        self.last_errors.pop(event, None)
        return True

    def _reject(self, event: str, message: str) -> bool:
        self.last_errors[event] = message
        logger.warning("Tab %s event failed: %s", event, message)
        return False
