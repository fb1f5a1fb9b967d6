"""SQLite-backed stores for visits and live tab records."""

from history_graph.storage.database import Database
from history_graph.storage.tabs import TabStore
from history_graph.storage.visits import VisitStore

__all__ = [
    "Database",
    "TabStore",
    "VisitStore",
]
