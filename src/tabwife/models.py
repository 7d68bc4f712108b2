"""Domain models for tab snapshots and engine results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class Tab:
    """Read-only snapshot of a single browser tab."""

    id: int
    url: str
    window_id: int
    title: str = ""
    pinned: bool = False
    active: bool = False


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """Tabs sharing one match key, with the tab to keep singled out."""

    key: tuple[Any, ...]
    tabs: tuple[Tab, ...]
    keeper: Tab
    closable: tuple[Tab, ...]

    @property
    def tab_ids(self) -> list[int]:
        return [tab.id for tab in self.tabs]


@dataclass(frozen=True, slots=True)
class DuplicateReport:
    groups: tuple[DuplicateGroup, ...] = ()

    @property
    def total_duplicate_count(self) -> int:
        return sum(len(group.closable) for group in self.groups)

    @property
    def closable_tab_ids(self) -> list[int]:
        return [tab.id for group in self.groups for tab in group.closable]


@dataclass(frozen=True, slots=True)
class DuplicateCheck:
    """Result of checking one freshly navigated tab against the others."""

    tab_id: int
    duplicate_ids: tuple[int, ...] = ()
    notify: bool = False

    @property
    def badge_count(self) -> int:
        return len(self.duplicate_ids) + 1 if self.duplicate_ids else 0


class SuggestionTier(IntEnum):
    ASSIGNED = 1
    KEYWORD = 2
    UNASSIGNED = 3


@dataclass(frozen=True, slots=True)
class ConsolidationSuggestion:
    """Recommendation to move stray tabs into a single target window."""

    label: str
    target_window_id: int
    tabs: tuple[Tab, ...]
    tier: SuggestionTier

    @property
    def impact(self) -> int:
        return len(self.tabs)

    @property
    def source_window_ids(self) -> list[int]:
        return sorted({tab.window_id for tab in self.tabs})


class OrganizeOutcome(str, Enum):
    SKIPPED = "skipped"
    UNASSIGNED = "unassigned"
    IN_PLACE = "in_place"
    MOVE = "move"
    STALE_TARGET = "stale_target"


@dataclass(frozen=True, slots=True)
class OrganizeDecision:
    """What the host should do with a tab after it navigated."""

    tab_id: int
    outcome: OrganizeOutcome
    target_window_id: Optional[int] = None
    activate: bool = False
    reason: Optional[str] = None
