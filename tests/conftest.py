"""Shared fixtures: a fresh database per test and a scriptable host."""

import pytest
import pytest_asyncio

from history_graph.host import BaseTabHost
from history_graph.manager import TabManager
from history_graph.storage import Database, TabStore, VisitStore


class FakeHost(BaseTabHost):
    """Host whose answers are set by the test."""

    def __init__(self):
        self.positions: dict[int, int] = {}
        self.snapshot = []
        self.queried: list[int] = []

    async def get_tab_position(self, tab_id):
        self.queried.append(tab_id)
        return self.positions.get(tab_id)

    async def query_tabs(self):
        return list(self.snapshot)


@pytest_asyncio.fixture
async def db(tmp_path):
    database = await Database.open(tmp_path / "history.db")
    yield database
    await database.close()


@pytest.fixture
def tab_store(db):
    return TabStore(db)


@pytest.fixture
def visit_store(db):
    return VisitStore(db)


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def manager(visit_store, tab_store, host):
    return TabManager(visit_store, tab_store, host)
