"""Group duplicate tabs and track which ones the user was already told about."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from .config import MatchConfig
from .matching import MatchKey, match_key
from .models import DuplicateCheck, DuplicateGroup, DuplicateReport, Tab
from .normalization import is_restricted_url

logger = logging.getLogger(__name__)

RecencyKey = Callable[[Tab], Any]


def tab_id_recency(tab: Tab) -> int:
    """Order tabs by host-assigned id.

    Browsers expose no creation time for tabs, but ids are handed out
    monotonically, so a larger id is treated as a more recently opened tab.
    """
    return tab.id


class NotifiedStore(Protocol):
    def mark_notified(self, tab_id: int) -> None: ...

    def clear_notified(self, tab_id: int) -> None: ...

    def is_notified(self, tab_id: int) -> bool: ...


class InMemoryNotifiedStore:
    """Set-backed notified-tab store, safe to reuse across passes."""

    def __init__(self, tab_ids: Iterable[int] = ()) -> None:
        self._tab_ids: set[int] = set(tab_ids)

    def mark_notified(self, tab_id: int) -> None:
        self._tab_ids.add(tab_id)

    def clear_notified(self, tab_id: int) -> None:
        self._tab_ids.discard(tab_id)

    def is_notified(self, tab_id: int) -> bool:
        return tab_id in self._tab_ids

    def __len__(self) -> int:
        return len(self._tab_ids)


def _pick_keeper(tabs: Sequence[Tab], keep_newest: bool, recency: RecencyKey) -> Tab:
    keeper = tabs[0]
    best = recency(keeper)
    for tab in tabs[1:]:
        value = recency(tab)
        if (value > best) if keep_newest else (value < best):
            keeper, best = tab, value
    return keeper


def find_duplicates(
    tabs: Iterable[Tab],
    config: Optional[MatchConfig] = None,
    keep_newest: bool = True,
    recency: Optional[RecencyKey] = None,
) -> DuplicateReport:
    """Partition tabs into groups of identical pages."""
    recency = recency or tab_id_recency
    buckets: dict[MatchKey, list[Tab]] = {}
    seen_ids: set[int] = set()
    for tab in tabs:
        if tab.id in seen_ids:
            continue
        seen_ids.add(tab.id)
        key = match_key(tab, config)
        if key is None:
            logger.debug("Skipping tab %s with unusable url %r", tab.id, tab.url)
            continue
        buckets.setdefault(key, []).append(tab)

    groups: list[DuplicateGroup] = []
    for key, members in buckets.items():
        if len(members) < 2:
            continue
        keeper = _pick_keeper(members, keep_newest, recency)
        groups.append(
            DuplicateGroup(
                key=key,
                tabs=tuple(members),
                keeper=keeper,
                closable=tuple(tab for tab in members if tab is not keeper),
            )
        )
    report = DuplicateReport(groups=tuple(groups))
    logger.debug(
        "Found %d duplicate groups (%d closable tabs)",
        len(report.groups),
        report.total_duplicate_count,
    )
    return report


def count_duplicates(tabs: Iterable[Tab], config: Optional[MatchConfig] = None) -> int:
    return find_duplicates(tabs, config).total_duplicate_count


def newly_seen(
    report: DuplicateReport, store: NotifiedStore, *, mark: bool = True
) -> list[int]:
    """Ids of grouped tabs the user has not been notified about yet."""
    fresh: list[int] = []
    for group in report.groups:
        for tab in group.tabs:
            if store.is_notified(tab.id):
                continue
            fresh.append(tab.id)
            if mark:
                store.mark_notified(tab.id)
    return fresh


def check_tab(
    tab: Tab,
    tabs: Iterable[Tab],
    config: Optional[MatchConfig] = None,
    store: Optional[NotifiedStore] = None,
) -> DuplicateCheck:
    """Compare one navigated tab against every other open tab."""
    if is_restricted_url(tab.url):
        return DuplicateCheck(tab_id=tab.id)
    key = match_key(tab, config)
    if key is None:
        return DuplicateCheck(tab_id=tab.id)

    duplicate_ids = tuple(
        other.id for other in tabs if other.id != tab.id and match_key(other, config) == key
    )
    if not duplicate_ids:
        return DuplicateCheck(tab_id=tab.id)

    notify = True
    if store is not None:
        notify = not store.is_notified(tab.id)
        if notify:
            store.mark_notified(tab.id)
    return DuplicateCheck(tab_id=tab.id, duplicate_ids=duplicate_ids, notify=notify)
