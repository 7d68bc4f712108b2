"""FastAPI application that exposes the TabWife engine to a browser host."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from .assignments import AssignmentState, organize_tab, resolve, stale_window_ids
from .config import MatchConfig
from .db import (
    database_connection,
    delete_window_assignments,
    fetch_assignments,
    fetch_settings,
    save_assignments,
    save_settings,
)
from .duplicates import InMemoryNotifiedStore, check_tab, find_duplicates, newly_seen
from .models import ConsolidationSuggestion, DuplicateGroup, OrganizeOutcome, Tab
from .paths import get_db_path
from .planner import group_by_window, plan
from .snapshot import SnapshotPayload, TabPayload

logger = logging.getLogger(__name__)


class DuplicatesRequest(SnapshotPayload):
    match_mode: Optional[str] = None
    match_facets: Optional[Dict[str, bool]] = None
    keep_newest: Optional[bool] = None


class CheckTabRequest(SnapshotPayload):
    tab: TabPayload


class ResolveRequest(BaseModel):
    tab: TabPayload

    model_config = ConfigDict(extra="forbid")


class OrganizeRequest(SnapshotPayload):
    tab: TabPayload


class PlanRequest(SnapshotPayload):
    threshold: Optional[int] = Field(default=None, ge=1)


class AssignmentPayload(BaseModel):
    window_id: int
    domain: Optional[str] = None
    keyword: Optional[str] = None
    nickname: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SettingsPayload(BaseModel):
    match_mode: Optional[str] = None
    match_facets: Optional[Dict[str, bool]] = None
    keep_newest: Optional[bool] = None
    auto_detect: Optional[bool] = None
    notify_duplicates: Optional[bool] = None
    auto_organize: Optional[bool] = None
    consolidation_threshold: Optional[int] = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")


def create_app(*, db_path: Optional[Path] = None) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())

    app = FastAPI(title="TabWife", version="0.3.0")
    app.state.db_path = resolved_db_path
    app.state.notified = InMemoryNotifiedStore()

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        logger.info("TabWife API using %s", resolved_db_path)

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "database_path": str(request.app.state.db_path),
            "notified_tabs": len(request.app.state.notified),
        }

    @app.get("/api/settings")
    def get_settings(request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            return fetch_settings(conn).to_mapping()

    @app.put("/api/settings")
    def update_settings(payload: SettingsPayload, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            current = fetch_settings(conn)
            updates = payload.model_dump(exclude_unset=True)
            if "match_mode" in updates or "match_facets" in updates:
                current.match_config = _match_config(
                    payload.match_mode, payload.match_facets, current.match_config
                )
            for name in (
                "keep_newest",
                "auto_detect",
                "notify_duplicates",
                "auto_organize",
                "consolidation_threshold",
            ):
                if updates.get(name) is not None:
                    setattr(current, name, updates[name])
            save_settings(conn, current)
            return current.to_mapping()

    @app.get("/api/assignments")
    def list_assignments(request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            return fetch_assignments(conn).to_raw()

    @app.post("/api/assignments")
    def add_assignment(payload: AssignmentPayload, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            state = fetch_assignments(conn)
            try:
                if payload.domain is not None:
                    state = state.assign_domain(payload.window_id, payload.domain)
                if payload.keyword is not None:
                    state = state.assign_keyword(payload.window_id, payload.keyword)
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            if payload.nickname is not None:
                state = state.set_nickname(payload.window_id, payload.nickname)
            save_assignments(conn, state)
        return state.to_raw()

    @app.delete("/api/assignments")
    def remove_assignment(payload: AssignmentPayload, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            state = fetch_assignments(conn)
            if payload.domain is not None:
                state = state.unassign_domain(payload.window_id, payload.domain)
            if payload.keyword is not None:
                state = state.unassign_keyword(payload.window_id, payload.keyword)
            if payload.nickname is not None:
                state = state.clear_nickname(payload.window_id)
            save_assignments(conn, state)
        return state.to_raw()

    @app.delete("/api/windows/{window_id}")
    def window_closed(window_id: int, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            removed = delete_window_assignments(conn, window_id)
        return {"window_id": window_id, "removed": removed}

    @app.post("/api/windows/cleanup")
    def cleanup_windows(payload: SnapshotPayload, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            stale = stale_window_ids(fetch_assignments(conn), payload.open_window_ids())
            for window_id in stale:
                delete_window_assignments(conn, window_id)
        return {"removed_windows": stale}

    @app.delete("/api/tabs/{tab_id}")
    def tab_closed(tab_id: int, request: Request) -> Dict[str, Any]:
        request.app.state.notified.clear_notified(tab_id)
        return {"tab_id": tab_id}

    @app.post("/api/duplicates")
    def duplicates(payload: DuplicatesRequest, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            settings = fetch_settings(conn)
        config = _match_config(payload.match_mode, payload.match_facets, settings.match_config)
        keep_newest = settings.keep_newest if payload.keep_newest is None else payload.keep_newest
        report = find_duplicates(payload.to_tabs(), config, keep_newest=keep_newest)
        fresh = newly_seen(report, request.app.state.notified)
        return {
            "groups": [_group_payload(group) for group in report.groups],
            "total_duplicate_count": report.total_duplicate_count,
            "closable_tab_ids": report.closable_tab_ids,
            "newly_seen": fresh,
        }

    @app.post("/api/duplicates/check")
    def check_duplicate(payload: CheckTabRequest, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            settings = fetch_settings(conn)
        if not settings.auto_detect:
            return {"tab_id": payload.tab.id, "duplicate_ids": [], "notify": False, "badge_count": 0}
        result = check_tab(
            payload.tab.to_tab(),
            payload.to_tabs(),
            settings.match_config,
            request.app.state.notified,
        )
        return {
            "tab_id": result.tab_id,
            "duplicate_ids": list(result.duplicate_ids),
            "notify": result.notify and settings.notify_duplicates,
            "badge_count": result.badge_count,
        }

    @app.post("/api/resolve")
    def resolve_tab(payload: ResolveRequest, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            state = fetch_assignments(conn)
        target = resolve(payload.tab.to_tab(), state.domains, state.keywords)
        return {"tab_id": payload.tab.id, "window_id": target}

    @app.post("/api/organize")
    def organize(payload: OrganizeRequest, request: Request) -> Dict[str, Any]:
        open_windows = payload.open_window_ids()
        with database_connection(request.app.state.db_path) as conn:
            settings = fetch_settings(conn)
            state = fetch_assignments(conn)
            if not settings.auto_organize:
                return {"tab_id": payload.tab.id, "outcome": "disabled", "window_id": None}
            decision = organize_tab(
                payload.tab.to_tab(),
                state.domains,
                state.keywords,
                lambda window_id: window_id in open_windows,
            )
            removed: List[str] = []
            stale = decision.outcome is OrganizeOutcome.STALE_TARGET
            if stale and decision.target_window_id is not None:
                removed = delete_window_assignments(conn, decision.target_window_id)
        return {
            "tab_id": decision.tab_id,
            "outcome": decision.outcome.value,
            "window_id": decision.target_window_id,
            "activate": decision.activate,
            "reason": decision.reason,
            "removed": removed,
        }

    @app.post("/api/plan")
    def consolidation_plan(payload: PlanRequest, request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            settings = fetch_settings(conn)
            state = fetch_assignments(conn)
        suggestions = plan(
            group_by_window(payload.to_tabs()),
            state.domains,
            state.keywords,
            threshold=payload.threshold or settings.consolidation_threshold,
        )
        return {
            "suggestions": [_suggestion_payload(s, state) for s in suggestions],
        }

    return app


def _match_config(
    mode: Optional[str],
    facets: Optional[Dict[str, bool]],
    fallback: MatchConfig,
) -> MatchConfig:
    try:
        if facets is not None:
            return MatchConfig.from_flags(facets)
        if mode:
            return MatchConfig.from_mode(mode)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return fallback


def _tab_payload(tab: Tab) -> Dict[str, Any]:
    return {
        "id": tab.id,
        "url": tab.url,
        "title": tab.title,
        "windowId": tab.window_id,
        "pinned": tab.pinned,
        "active": tab.active,
    }


def _group_payload(group: DuplicateGroup) -> Dict[str, Any]:
    return {
        "keeper": _tab_payload(group.keeper),
        "closable": [_tab_payload(tab) for tab in group.closable],
        "tab_ids": group.tab_ids,
    }


def _suggestion_payload(
    suggestion: ConsolidationSuggestion, state: AssignmentState
) -> Dict[str, Any]:
    return {
        "label": suggestion.label,
        "tier": int(suggestion.tier),
        "target_window_id": suggestion.target_window_id,
        "target_nickname": state.nicknames.get(suggestion.target_window_id),
        "impact": suggestion.impact,
        "source_window_ids": suggestion.source_window_ids,
        "tabs": [_tab_payload(tab) for tab in suggestion.tabs],
    }
