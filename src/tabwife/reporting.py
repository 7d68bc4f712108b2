"""Console output for duplicate reports, suggestions and assignments."""

from __future__ import annotations

from typing import Iterable, Optional

from .assignments import AssignmentState
from .models import ConsolidationSuggestion, DuplicateReport, OrganizeDecision, SuggestionTier, Tab

_TIER_LABELS = {
    SuggestionTier.ASSIGNED: "assigned",
    SuggestionTier.KEYWORD: "keyword",
    SuggestionTier.UNASSIGNED: "unassigned",
}


def format_tab(tab: Tab, width: int = 45) -> str:
    label = tab.title or tab.url
    if len(label) > width:
        label = label[: width - 3] + "..."
    return f"#{tab.id:<6} w{tab.window_id:<6} {label:<{width}} {tab.url}"


def window_label(window_id: int, nicknames: Optional[dict[int, str]] = None) -> str:
    nickname = (nicknames or {}).get(window_id)
    return f"{window_id} ({nickname})" if nickname else str(window_id)


def print_duplicate_report(report: DuplicateReport) -> None:
    if not report.groups:
        print("No duplicate tabs found.")
        return

    print(
        f"{len(report.groups)} duplicate group(s), "
        f"{report.total_duplicate_count} tab(s) can be closed"
    )
    print("-" * 40)
    for index, group in enumerate(report.groups, start=1):
        print(f"Group {index}:")
        print(f"  keep   {format_tab(group.keeper)}")
        for tab in group.closable:
            print(f"  close  {format_tab(tab)}")


def print_suggestions(
    suggestions: Iterable[ConsolidationSuggestion],
    nicknames: Optional[dict[int, str]] = None,
) -> None:
    suggestions = list(suggestions)
    if not suggestions:
        print("Nothing to consolidate.")
        return

    for suggestion in suggestions:
        target = window_label(suggestion.target_window_id, nicknames)
        sources = ", ".join(str(window_id) for window_id in suggestion.source_window_ids)
        print(
            f"[{_TIER_LABELS[suggestion.tier]}] {suggestion.label}: "
            f"move {suggestion.impact} tab(s) from {sources} to window {target}"
        )
        for tab in suggestion.tabs:
            print(f"    {format_tab(tab)}")


def print_assignments(state: AssignmentState) -> None:
    window_ids = state.window_ids()
    if not window_ids:
        print("No window assignments.")
        return

    for window_id in window_ids:
        print(f"Window {window_label(window_id, dict(state.nicknames))}")
        domains = state.domains.get(window_id, ())
        keywords = state.keywords.get(window_id, ())
        print(f"  domains:  {', '.join(domains) if domains else '-'}")
        print(f"  keywords: {', '.join(keywords) if keywords else '-'}")


def describe_decision(decision: OrganizeDecision) -> str:
    text = f"tab {decision.tab_id}: {decision.outcome.value}"
    if decision.target_window_id is not None:
        text += f" -> window {decision.target_window_id}"
    if decision.activate:
        text += " (focus)"
    if decision.reason:
        text += f" [{decision.reason}]"
    return text
