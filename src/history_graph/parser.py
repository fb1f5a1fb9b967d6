"""Parse raw host tab payloads into typed tabs and pages."""

from __future__ import annotations

from history_graph.models import Page, RealTab


def parse_page(raw: dict, max_title_length: int = 300) -> Page | None:
    """Page shown in a tab payload; None when the tab has no URL yet.

    The URL is kept whole: it identifies the page when tabs are matched
    after a restart.
    """
    url = (raw.get("url") or "").strip()
    if not url:
        return None

    title = (raw.get("title") or "").strip()
    if len(title) > max_title_length:
        title = title[:max_title_length]

    icon = (raw.get("favIconUrl") or "").strip()
    return Page(title=title, url=url, icon=icon)


def parse_tab(raw: dict) -> RealTab | None:
    """Normalize one tab payload; returns None for payloads without id or index."""
    tab_id = _as_int(raw.get("id"))
    position = _as_int(raw.get("index"))
    if tab_id is None or position is None or position < 0:
        return None

    return RealTab(
        tab_id=tab_id,
        position=position,
        page=parse_page(raw),
        opener_tab_id=_as_int(raw.get("openerTabId")),
    )


def _as_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
