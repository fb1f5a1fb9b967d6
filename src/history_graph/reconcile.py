"""Match the host's open tabs against tab records left over from a previous run.

Tab ids do not survive a browser restart, so the only cheap correlating key
is position, confirmed by the URL of the page shown there. A record whose
slot now holds a different page is dropped rather than risk attaching the
wrong history to a tab; a real continuation treated as unknown is the
acceptable failure.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping

from history_graph.models import RealTab, ReconciliationResult, TabRecord
from history_graph.storage import TabStore, VisitStore

logger = logging.getLogger(__name__)


def reconcile(
    real_tabs: Iterable[RealTab],
    records: Iterable[TabRecord],
    page_urls: Mapping[int, str],
) -> ReconciliationResult:
    """Classify persisted records as confirmed or discarded.

    Args:
        real_tabs: The host's open tabs (unique positions).
        records: Persisted records, in persisted order.
        page_urls: URL of each record's current visit, keyed by visit id.
            A visit missing from the mapping never confirms a match.

    Returns:
        Confirmed records rewritten with the matching real tab id, the
        discarded records, and the real tabs nothing matched.
    """
    working = {tab.position: tab for tab in real_tabs}
    result = ReconciliationResult()

    for record in records:
        real = working.get(record.tab_position)
        if real is None:
            logger.debug("Tab record %s: nothing open at %s", record.tab_id, record.tab_position)
            result.discarded.append(record)
            continue

        if not _same_page(record, real, page_urls):
            logger.debug(
                "Tab record %s: different page at position %s",
                record.tab_id,
                record.tab_position,
            )
            result.discarded.append(record)
            continue

        del working[record.tab_position]
        result.confirmed.append(replace(record, tab_id=real.tab_id))

    result.unknown = sorted(working.values(), key=lambda tab: tab.position)
    return result


def _same_page(record: TabRecord, real: RealTab, page_urls: Mapping[int, str]) -> bool:
    if record.current_visit is None or real.page is None:
        return record.current_visit is None and real.page is None
    return page_urls.get(record.current_visit) == real.page.url


async def reconcile_store(
    real_tabs: Iterable[RealTab],
    tabs: TabStore,
    visits: VisitStore,
) -> ReconciliationResult:
    """Reconcile the tab store with the host snapshot and rewrite it.

    Every persisted record is either rewritten with its new tab id or
    dropped; the table is replaced in a single transaction.
    """
    real_tabs = list(real_tabs)
    records = await tabs.get_all()

    page_urls: dict[int, str] = {}
    for record in records:
        if record.current_visit is None or record.current_visit in page_urls:
            continue
        visit = await visits.get_visit(record.current_visit)
        if visit is not None:
            page_urls[visit.id] = visit.page.url

    result = reconcile(real_tabs, records, page_urls)
    await tabs.replace_all(result.confirmed)

    logger.info(
        "Reconciled %d open tabs with %d stored records: %d confirmed, %d discarded, %d unknown",
        len(real_tabs),
        len(records),
        len(result.confirmed),
        len(result.discarded),
        len(result.unknown),
    )
    return result
