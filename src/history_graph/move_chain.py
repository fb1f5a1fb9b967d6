"""Reconstruct the position cascade caused by a single tab move.

The host reports only "tab X moved to position P". Every tab between P and
X's old slot shifted by one as a side effect, but nothing tells us so. The
stored records still hold pre-move positions, so we follow the chain: whoever
sat at P moved somewhere (the host knows where), whoever sat there moved
on, and so on until we reach an empty slot or come back to X.
"""

from __future__ import annotations

import logging
from typing import Sequence

from history_graph.exceptions import ConstraintViolationError, TabNotFoundError
from history_graph.host import BaseTabHost
from history_graph.models import TabMove
from history_graph.storage import TabStore

logger = logging.getLogger(__name__)


class MoveChainResolver:
    """Derive and commit the full set of position changes for one move."""

    def __init__(self, tabs: TabStore, host: BaseTabHost):
        self.tabs = tabs
        self.host = host

    async def resolve_cascade(self, target_position: int, stop_tab_id: int) -> list[TabMove]:
        """Moves implied by a tab landing on ``target_position``.

        The result is ordered so that applying it front to back never
        writes a position still held by an entry not yet applied: the tab
        found deepest in the chain comes first.

        Raises:
            TabNotFoundError: the host no longer knows a displaced tab.
            ConstraintViolationError: the chain revisits a tab other than
                ``stop_tab_id``, i.e. stored positions and the host disagree.
        """
        stack: list[TabMove] = []
        visited = {stop_tab_id}
        target = target_position

        while True:
            occupant = await self.tabs.get_by_position(target)
            if occupant is None:
                break
            if occupant.tab_id == stop_tab_id:
                logger.debug("Move chain closed back on tab %s", stop_tab_id)
                break
            if occupant.tab_id in visited:
                raise ConstraintViolationError(
                    f"Move chain revisits tab {occupant.tab_id} at position {target}"
                )
            visited.add(occupant.tab_id)

            new_position = await self.host.get_tab_position(occupant.tab_id)
            if new_position is None:
                raise TabNotFoundError(occupant.tab_id)
            stack.append(TabMove(tab_id=occupant.tab_id, tab_position=new_position))
            target = new_position

        stack.reverse()
        return stack

    async def move_tab(self, tab_id: int, new_index: int) -> list[TabMove]:
        """Resolve and commit a manual move of ``tab_id`` to ``new_index``.

        Returns the committed moves, the originating move last.
        """
        record = await self.tabs.get(tab_id)
        if record is None:
            raise TabNotFoundError(tab_id)

        cascade = await self.resolve_cascade(new_index, stop_tab_id=tab_id)
        moves = cascade + [TabMove(tab_id=tab_id, tab_position=new_index)]
        evict = tab_id if is_circular(cascade, record.tab_position) else None

        await self.tabs.apply_move_chain(moves, evict=evict)
        logger.debug(
            "Moved tab %s from %s to %s (%d displaced, circular=%s)",
            tab_id,
            record.tab_position,
            new_index,
            len(cascade),
            evict is not None,
        )
        return moves


def is_circular(cascade: Sequence[TabMove], old_position: int) -> bool:
    """True when the cascade fills the moving tab's old slot."""
    return bool(cascade) and cascade[0].tab_position == old_position
