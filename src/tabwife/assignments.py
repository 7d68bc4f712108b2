"""Resolve which window a tab belongs to from domain and keyword assignments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

from .models import OrganizeDecision, OrganizeOutcome, Tab
from .normalization import UrlKey, build_key, is_restricted_url

logger = logging.getLogger(__name__)

AssignmentMap = Mapping[Any, Sequence[str]]


def _window_id(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def iter_assignments(assignments: Optional[AssignmentMap]) -> Iterator[tuple[int, Sequence[str]]]:
    """Yield ``(window_id, values)`` in mapping order, skipping malformed keys."""
    for raw_id, values in (assignments or {}).items():
        window_id = _window_id(raw_id)
        if window_id is None:
            logger.warning("Ignoring assignment with non-numeric window id %r", raw_id)
            continue
        yield window_id, values or ()


def keyword_matches(keyword: str, haystacks: Iterable[str]) -> bool:
    needle = keyword.strip().lower()
    if not needle:
        return False
    return any(needle in haystack for haystack in haystacks)


def keyword_haystacks(tab: Tab, key: UrlKey) -> tuple[str, str, str]:
    return tab.url.lower(), (tab.title or "").lower(), key.host.lower()


def resolve(
    tab: Tab,
    domain_assignments: Optional[AssignmentMap],
    keyword_assignments: Optional[AssignmentMap],
) -> Optional[int]:
    """Return the window a tab is assigned to, or ``None``.

    Domain assignments always win over keyword assignments; within each kind
    the first window in mapping order wins, and within a window the first
    keyword in list order.
    """
    key = build_key(tab.url)
    if not isinstance(key, UrlKey):
        return None

    for window_id, domains in iter_assignments(domain_assignments):
        if any(str(domain).strip().lower() == key.domain_key for domain in domains):
            logger.debug("Tab %s matched domain %s in window %s", tab.id, key.domain_key, window_id)
            return window_id

    haystacks = keyword_haystacks(tab, key)
    for window_id, keywords in iter_assignments(keyword_assignments):
        for keyword in keywords:
            if keyword_matches(str(keyword), haystacks):
                logger.debug("Tab %s matched keyword %r in window %s", tab.id, keyword, window_id)
                return window_id
    return None


def organize_tab(
    tab: Tab,
    domain_assignments: Optional[AssignmentMap],
    keyword_assignments: Optional[AssignmentMap],
    window_exists: Callable[[int], bool],
) -> OrganizeDecision:
    """Decide whether a tab should move to its assigned window."""
    if tab.pinned:
        return OrganizeDecision(tab.id, OrganizeOutcome.SKIPPED, reason="pinned")
    if is_restricted_url(tab.url):
        return OrganizeDecision(tab.id, OrganizeOutcome.SKIPPED, reason="restricted url")

    target = resolve(tab, domain_assignments, keyword_assignments)
    if target is None:
        return OrganizeDecision(tab.id, OrganizeOutcome.UNASSIGNED)
    if target == tab.window_id:
        return OrganizeDecision(tab.id, OrganizeOutcome.IN_PLACE, target_window_id=target)
    if not window_exists(target):
        logger.info("Assigned window %s for tab %s no longer exists", target, tab.id)
        return OrganizeDecision(
            tab.id,
            OrganizeOutcome.STALE_TARGET,
            target_window_id=target,
            reason="window closed",
        )
    return OrganizeDecision(
        tab.id, OrganizeOutcome.MOVE, target_window_id=target, activate=tab.active
    )


@dataclass(frozen=True, slots=True)
class AssignmentState:
    """Per-window domain, keyword and nickname assignments.

    Mappings keep insertion order, which is also resolution order.
    """

    domains: Mapping[int, tuple[str, ...]] = field(default_factory=dict)
    keywords: Mapping[int, tuple[str, ...]] = field(default_factory=dict)
    nicknames: Mapping[int, str] = field(default_factory=dict)

    @classmethod
    def from_raw(
        cls,
        window_domains: Optional[AssignmentMap] = None,
        window_keywords: Optional[AssignmentMap] = None,
        window_nicknames: Optional[Mapping[Any, str]] = None,
    ) -> "AssignmentState":
        """Build from the persisted ``{"<window id>": [...]}`` shape."""
        nicknames: dict[int, str] = {}
        for raw_id, name in (window_nicknames or {}).items():
            window_id = _window_id(raw_id)
            if window_id is not None and name:
                nicknames[window_id] = str(name)
        return cls(
            domains={
                window_id: tuple(str(value).strip().lower() for value in values)
                for window_id, values in iter_assignments(window_domains)
                if values
            },
            keywords={
                window_id: tuple(str(value) for value in values)
                for window_id, values in iter_assignments(window_keywords)
                if values
            },
            nicknames=nicknames,
        )

    def to_raw(self) -> dict[str, dict[str, Any]]:
        return {
            "windowDomains": {str(k): list(v) for k, v in self.domains.items()},
            "windowKeywords": {str(k): list(v) for k, v in self.keywords.items()},
            "windowNicknames": {str(k): v for k, v in self.nicknames.items()},
        }

    def window_ids(self) -> list[int]:
        ordered: dict[int, None] = {}
        for mapping in (self.domains, self.keywords, self.nicknames):
            for window_id in mapping:
                ordered.setdefault(window_id, None)
        return list(ordered)

    def window_for_domain(self, domain_key: str) -> Optional[int]:
        wanted = domain_key.strip().lower()
        for window_id, domains in self.domains.items():
            if wanted in domains:
                return window_id
        return None

    def assign_domain(self, window_id: int, domain_key: str) -> "AssignmentState":
        """Assign a domain key to a window, taking it away from any other window."""
        value = domain_key.strip().lower()
        if not value:
            raise ValueError("domain key must not be empty")
        domains: dict[int, tuple[str, ...]] = {}
        for current_id, values in self.domains.items():
            kept = tuple(v for v in values if v != value or current_id == window_id)
            if kept:
                domains[current_id] = kept
        if value not in domains.get(window_id, ()):
            domains[window_id] = domains.get(window_id, ()) + (value,)
        return replace(self, domains=domains)

    def unassign_domain(self, window_id: int, domain_key: str) -> "AssignmentState":
        value = domain_key.strip().lower()
        return replace(self, domains=_without(self.domains, window_id, lambda v: v == value))

    def assign_keyword(self, window_id: int, keyword: str) -> "AssignmentState":
        value = keyword.strip()
        if not value:
            raise ValueError("keyword must not be empty")
        existing = self.keywords.get(window_id, ())
        if any(v.lower() == value.lower() for v in existing):
            return self
        keywords = dict(self.keywords)
        keywords[window_id] = existing + (value,)
        return replace(self, keywords=keywords)

    def unassign_keyword(self, window_id: int, keyword: str) -> "AssignmentState":
        value = keyword.strip().lower()
        return replace(
            self, keywords=_without(self.keywords, window_id, lambda v: v.lower() == value)
        )

    def set_nickname(self, window_id: int, nickname: str) -> "AssignmentState":
        value = nickname.strip()
        if not value:
            return self.clear_nickname(window_id)
        nicknames = dict(self.nicknames)
        nicknames[window_id] = value
        return replace(self, nicknames=nicknames)

    def clear_nickname(self, window_id: int) -> "AssignmentState":
        nicknames = {k: v for k, v in self.nicknames.items() if k != window_id}
        return replace(self, nicknames=nicknames)

    def drop_window(self, window_id: int) -> "AssignmentState":
        """Forget everything assigned to a window, e.g. after it was closed."""
        return AssignmentState(
            domains={k: v for k, v in self.domains.items() if k != window_id},
            keywords={k: v for k, v in self.keywords.items() if k != window_id},
            nicknames={k: v for k, v in self.nicknames.items() if k != window_id},
        )


def _without(
    mapping: Mapping[int, tuple[str, ...]],
    window_id: int,
    predicate: Callable[[str], bool],
) -> dict[int, tuple[str, ...]]:
    result: dict[int, tuple[str, ...]] = {}
    for current_id, values in mapping.items():
        if current_id == window_id:
            values = tuple(v for v in values if not predicate(v))
        if values:
            result[current_id] = values
    return result


def stale_window_ids(state: AssignmentState, existing_window_ids: Iterable[int]) -> list[int]:
    """Assigned windows that are no longer open, in assignment order."""
    existing = set(existing_window_ids)
    return [window_id for window_id in state.window_ids() if window_id not in existing]
