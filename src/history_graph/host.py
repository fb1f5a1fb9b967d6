"""Abstract interface to the browser that owns the tab strip."""

from __future__ import annotations

from abc import ABC, abstractmethod

from history_graph.models import RealTab


class BaseTabHost(ABC):
    """On-demand queries answered by the host browser."""

    @abstractmethod
    async def get_tab_position(self, tab_id: int) -> int | None:
        """Current (post-move) position of a tab, or None if it no longer exists."""
        ...

    @abstractmethod
    async def query_tabs(self) -> list[RealTab]:
        """Snapshot of every open tab, in position order."""
        ...
