"""Causal history of browser navigations across tabs."""

from history_graph.events import TabEventHandler
from history_graph.host import BaseTabHost
from history_graph.manager import TabManager
from history_graph.models import (
    Creation,
    CreationCause,
    End,
    EndCause,
    Page,
    RealTab,
    ReconciliationResult,
    TabMove,
    TabRecord,
    Visit,
)
from history_graph.move_chain import MoveChainResolver
from history_graph.reconcile import reconcile, reconcile_store
from history_graph.storage import Database, TabStore, VisitStore

__all__ = [
    "TabEventHandler",
    "BaseTabHost",
    "TabManager",
    "Creation",
    "CreationCause",
    "End",
    "EndCause",
    "Page",
    "RealTab",
    "ReconciliationResult",
    "TabMove",
    "TabRecord",
    "Visit",
    "MoveChainResolver",
    "reconcile",
    "reconcile_store",
    "Database",
    "TabStore",
    "VisitStore",
]
