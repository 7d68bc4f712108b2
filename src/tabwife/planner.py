"""Suggest which stray tabs should be gathered into which window."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Mapping, Optional, Sequence

from .assignments import AssignmentMap, iter_assignments, keyword_haystacks, keyword_matches
from .config import DEFAULT_CONSOLIDATION_THRESHOLD
from .models import ConsolidationSuggestion, SuggestionTier, Tab
from .normalization import UrlKey, build_key, is_restricted_url

logger = logging.getLogger(__name__)


def group_by_window(tabs: Iterable[Tab]) -> dict[int, list[Tab]]:
    """Bucket a flat snapshot by window id, windows in ascending order."""
    buckets: dict[int, list[Tab]] = {}
    for tab in tabs:
        buckets.setdefault(tab.window_id, []).append(tab)
    return {window_id: buckets[window_id] for window_id in sorted(buckets)}


class _Candidate:
    __slots__ = ("tab", "window_id", "key")

    def __init__(self, tab: Tab, window_id: int, key: UrlKey) -> None:
        self.tab = tab
        self.window_id = window_id
        self.key = key


def _candidates(tabs_by_window: Mapping[int, Sequence[Tab]]) -> list[_Candidate]:
    result: list[_Candidate] = []
    seen: set[int] = set()
    for window_id, tabs in tabs_by_window.items():
        for tab in tabs:
            if tab.id in seen or tab.pinned or is_restricted_url(tab.url):
                continue
            key = build_key(tab.url)
            if not isinstance(key, UrlKey):
                continue
            seen.add(tab.id)
            result.append(_Candidate(tab, int(window_id), key))
    return result


def _strays(claimed: Sequence[_Candidate], target_window_id: int) -> tuple[Tab, ...]:
    return tuple(c.tab for c in claimed if c.window_id != target_window_id)


def plan(
    tabs_by_window: Mapping[int, Sequence[Tab]],
    domain_assignments: Optional[AssignmentMap] = None,
    keyword_assignments: Optional[AssignmentMap] = None,
    threshold: int = DEFAULT_CONSOLIDATION_THRESHOLD,
) -> list[ConsolidationSuggestion]:
    """Rank move suggestions: assigned domains, then keywords, then dominant domains.

    A tab is claimed by the first tier (and the first assignment within a
    tier) that covers it, so it shows up in at most one suggestion. Windows
    named by an assignment but missing from the snapshot are skipped.
    """
    if threshold < 1:
        raise ValueError("threshold must be at least 1")

    open_windows = {int(window_id) for window_id in tabs_by_window}
    remaining = _candidates(tabs_by_window)
    suggestions: list[ConsolidationSuggestion] = []

    assigned_keys: set[str] = set()
    for window_id, domains in iter_assignments(domain_assignments):
        if window_id not in open_windows:
            logger.debug("Skipping domain assignments for closed window %s", window_id)
            continue
        for domain in domains:
            domain_key = str(domain).strip().lower()
            if not domain_key or domain_key in assigned_keys:
                continue
            assigned_keys.add(domain_key)
            claimed = [c for c in remaining if c.key.domain_key == domain_key]
            if not claimed:
                continue
            remaining = [c for c in remaining if c.key.domain_key != domain_key]
            strays = _strays(claimed, window_id)
            if strays:
                suggestions.append(
                    ConsolidationSuggestion(domain_key, window_id, strays, SuggestionTier.ASSIGNED)
                )

    for window_id, keywords in iter_assignments(keyword_assignments):
        if window_id not in open_windows:
            logger.debug("Skipping keyword assignments for closed window %s", window_id)
            continue
        for keyword in keywords:
            keyword = str(keyword)
            claimed = [
                c for c in remaining if keyword_matches(keyword, keyword_haystacks(c.tab, c.key))
            ]
            if not claimed:
                continue
            claimed_ids = {c.tab.id for c in claimed}
            remaining = [c for c in remaining if c.tab.id not in claimed_ids]
            strays = _strays(claimed, window_id)
            if strays:
                suggestions.append(
                    ConsolidationSuggestion(
                        keyword.strip(), window_id, strays, SuggestionTier.KEYWORD
                    )
                )

    by_domain: dict[str, list[_Candidate]] = {}
    for candidate in remaining:
        by_domain.setdefault(candidate.key.domain_key, []).append(candidate)

    unassigned: list[ConsolidationSuggestion] = []
    for domain_key, claimed in by_domain.items():
        counts = Counter(c.window_id for c in claimed)
        home_window, home_count = min(counts.items(), key=lambda item: (-item[1], item[0]))
        if home_count < threshold:
            continue
        strays = _strays(claimed, home_window)
        if strays:
            unassigned.append(
                ConsolidationSuggestion(domain_key, home_window, strays, SuggestionTier.UNASSIGNED)
            )
    unassigned.sort(key=lambda suggestion: (-suggestion.impact, suggestion.label))

    suggestions.extend(unassigned)
    logger.debug("Planned %d consolidation suggestions", len(suggestions))
    return suggestions
