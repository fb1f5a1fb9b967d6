"""Unified exception hierarchy for history-graph."""


class HistoryGraphError(Exception):
    """Base exception for all history-graph errors."""


# Lookups
class NotFoundError(HistoryGraphError):
    """Operated on a tab or visit that has no record."""


class TabNotFoundError(NotFoundError):
    """No tab record exists for the given tab id."""

    def __init__(self, tab_id: int):
        super().__init__(f"Tab record not found: {tab_id}")
        self.tab_id = tab_id


class VisitNotFoundError(NotFoundError):
    """No visit exists for the given visit id."""

    def __init__(self, visit_id: int):
        super().__init__(f"Visit not found: {visit_id}")
        self.visit_id = visit_id


# Invariants
class ConstraintViolationError(HistoryGraphError):
    """A write would break position uniqueness (a logic defect, not transient)."""


# Storage
class StorageError(HistoryGraphError):
    """The underlying database rejected an open, read, write or transaction."""
