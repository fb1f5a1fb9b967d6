"""Tests for host event dispatch."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from history_graph.events import TabEventHandler
from history_graph.exceptions import ConstraintViolationError, StorageError
from history_graph.models import Page, RealTab


@pytest.fixture
def handler():
    manager = MagicMock()
    manager.import_tabs = AsyncMock()
    manager.create_tab = AsyncMock()
    manager.close_tab = AsyncMock()
    manager.move_tab_manual = AsyncMock()
    manager.navigate_to = AsyncMock()
    return TabEventHandler(manager), manager


@pytest.mark.asyncio
async def test_created(handler):
    events, manager = handler
    ok = await events.on_created({"id": 5, "index": 2, "openerTabId": 3})
    assert ok is True
    manager.create_tab.assert_awaited_once_with(5, 3, 2)


@pytest.mark.asyncio
async def test_created_malformed(handler):
    events, manager = handler
    assert await events.on_created({"index": 2}) is False
    assert "created" in events.last_errors
    manager.create_tab.assert_not_called()


@pytest.mark.asyncio
async def test_removed(handler):
    events, manager = handler
    assert await events.on_removed(5) is True
    manager.close_tab.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_moved_failure_is_reported(handler):
    events, manager = handler
    manager.move_tab_manual.side_effect = ConstraintViolationError("duplicate position")

    ok = await events.on_moved(5, {"fromIndex": 0, "toIndex": 3, "windowId": 1})

    assert ok is False
    assert events.last_errors["moved"] == "duplicate position"
    manager.move_tab_manual.assert_awaited_once_with(5, 3)


@pytest.mark.asyncio
async def test_success_clears_last_error(handler):
    events, manager = handler
    manager.move_tab_manual.side_effect = [StorageError("disk full"), None]
    assert await events.on_moved(5, {"toIndex": 1}) is False
    assert await events.on_moved(5, {"toIndex": 1}) is True
    assert "moved" not in events.last_errors


@pytest.mark.asyncio
async def test_moved_without_index(handler):
    events, manager = handler
    assert await events.on_moved(5, {}) is False
    manager.move_tab_manual.assert_not_called()


@pytest.mark.asyncio
async def test_updated_ignores_loading(handler):
    events, manager = handler
    ok = await events.on_updated(5, {"status": "loading"}, {"id": 5, "url": "https://a.com/"})
    assert ok is True
    manager.navigate_to.assert_not_called()


@pytest.mark.asyncio
async def test_updated_complete(handler):
    events, manager = handler
    raw = {"id": 5, "index": 0, "url": "https://a.com/", "title": "A", "favIconUrl": "i.png"}
    assert await events.on_updated(5, {"status": "complete"}, raw) is True
    manager.navigate_to.assert_awaited_once_with(5, Page(title="A", url="https://a.com/", icon="i.png"))


@pytest.mark.asyncio
async def test_startup_skips_malformed(handler):
    events, manager = handler
    raw_tabs = [
        {"id": 1, "index": 0, "url": "https://a.com/", "title": "A"},
        {"index": 1},
        {"id": 3, "index": 2},
    ]
    assert await events.on_startup(raw_tabs) is True
    manager.import_tabs.assert_awaited_once_with([
        RealTab(tab_id=1, position=0, page=Page(title="A", url="https://a.com/")),
        RealTab(tab_id=3, position=2),
    ])
