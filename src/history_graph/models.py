"""Data models for visits and live tab records."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone


class CreationCause(str, enum.Enum):
    MANUAL = "manual"
    NAVIGATION = "navigation"
    IMPORT = "import"


class EndCause(str, enum.Enum):
    MANUAL = "manual"
    NAVIGATION = "navigation"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Page:
    """Snapshot of a website at the time a visit was created."""

    title: str
    url: str
    icon: str = ""  # favicon URL


@dataclass(frozen=True)
class Creation:
    """How a visit came to be.

    ``parent_id`` is None iff the cause is manual or import.
    ``replaced_parent`` is only meaningful with a parent: True when the visit
    took over its parent's tab, False when it opened in a new tab.
    """

    cause: CreationCause
    time: datetime
    parent_id: int | None = None
    replaced_parent: bool | None = None


@dataclass(frozen=True)
class End:
    cause: EndCause
    time: datetime


@dataclass(frozen=True)
class Visit:
    """One page occupying one tab for a span of time."""

    id: int
    page: Page
    creation: Creation
    children: tuple[int, ...] = ()
    end: End | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def add_child(self, visit_id: int) -> Visit:
        return replace(self, children=self.children + (visit_id,))

    def close(self, cause: EndCause, time: datetime | None = None) -> Visit:
        """Return this visit ended; an already-ended visit is returned unchanged."""
        if self.end is not None:
            return self
        return replace(self, end=End(cause=cause, time=time or utcnow()))


@dataclass(frozen=True)
class TabRecord:
    """Persisted binding of a live tab to its current visit and position."""

    tab_id: int
    tab_position: int
    current_visit: int | None = None
    created_by_visit: int | None = None


@dataclass(frozen=True)
class RealTab:
    """An open tab as reported by the host."""

    tab_id: int
    position: int
    page: Page | None = None
    opener_tab_id: int | None = None

    @property
    def url(self) -> str | None:
        return self.page.url if self.page else None


@dataclass(frozen=True)
class TabMove:
    """Assignment of a new position to one tab."""

    tab_id: int
    tab_position: int


@dataclass
class ReconciliationResult:
    """Outcome of matching a host snapshot against persisted tab records."""

    confirmed: list[TabRecord] = field(default_factory=list)
    unknown: list[RealTab] = field(default_factory=list)
    discarded: list[TabRecord] = field(default_factory=list)
