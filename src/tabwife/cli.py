"""Command-line interface for TabWife."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .assignments import organize_tab, stale_window_ids
from .config import EngineSettings, MatchConfig
from .db import (
    database_connection,
    delete_window_assignments,
    fetch_assignments,
    fetch_settings,
    save_assignments,
    save_settings,
)
from .duplicates import find_duplicates
from .models import OrganizeOutcome
from .normalization import domain_key_for
from .paths import get_db_path, get_log_path
from .planner import group_by_window, plan
from .reporting import (
    describe_decision,
    print_assignments,
    print_duplicate_report,
    print_suggestions,
)
from .snapshot import SnapshotPayload, load_snapshot

logger = logging.getLogger(__name__)

app = typer.Typer(help="Find duplicate tabs and keep windows organized.")

_DB_HELP = "Location of the TabWife SQLite database."
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_to_file: bool = typer.Option(
        False, "--log-to-file", help="Also append logs to tabwife.log in the data directory."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
    )
    if log_to_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logging.getLogger("tabwife").addHandler(handler)


def _load(snapshot: Path) -> SnapshotPayload:
    try:
        return load_snapshot(snapshot)
    except (OSError, ValueError) as exc:
        # ValidationError and JSONDecodeError are both ValueErrors.
        logger.debug("Snapshot load failed", exc_info=True)
        typer.echo(f"Could not read snapshot {snapshot}: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _match_config(mode: Optional[str], settings: EngineSettings) -> MatchConfig:
    if not mode:
        return settings.match_config
    try:
        return MatchConfig.from_mode(mode)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--mode") from exc


@app.command()
def duplicates(
    snapshot: Path = typer.Argument(..., help="JSON file with the open tabs."),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        help="Match preset (relaxed, normal, strict) or legacy mode (exact, domain, subdomain, path).",
    ),
    keep_oldest: bool = typer.Option(
        False, "--keep-oldest", help="Keep the oldest tab of each group instead of the newest."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """List duplicate tab groups and which tabs can be closed."""
    payload = _load(snapshot)
    with database_connection(get_db_path(db_path)) as conn:
        settings = fetch_settings(conn)
    config = _match_config(mode, settings)
    keep_newest = settings.keep_newest and not keep_oldest
    report = find_duplicates(payload.to_tabs(), config, keep_newest=keep_newest)
    print_duplicate_report(report)


@app.command("plan")
def plan_command(
    snapshot: Path = typer.Argument(..., help="JSON file with the open tabs."),
    threshold: Optional[int] = typer.Option(
        None,
        "--threshold",
        min=1,
        help="Tabs a window needs for an unassigned domain before it becomes its home.",
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Suggest which stray tabs to gather into which window."""
    payload = _load(snapshot)
    with database_connection(get_db_path(db_path)) as conn:
        state = fetch_assignments(conn)
        settings = fetch_settings(conn)
    suggestions = plan(
        group_by_window(payload.to_tabs()),
        state.domains,
        state.keywords,
        threshold=threshold or settings.consolidation_threshold,
    )
    print_suggestions(suggestions, dict(state.nicknames))


@app.command()
def organize(
    snapshot: Path = typer.Argument(..., help="JSON file with the open tabs."),
    tab_ids: Optional[List[int]] = typer.Option(
        None, "--tab", help="Only decide for these tab ids (repeatable)."
    ),
    prune: bool = typer.Option(
        False, "--prune", help="Drop assignments of windows that turn out to be closed."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Show where assignments would move each tab."""
    payload = _load(snapshot)
    open_windows = payload.open_window_ids()
    wanted = set(tab_ids or [])
    resolved_db = get_db_path(db_path)
    with database_connection(resolved_db) as conn:
        state = fetch_assignments(conn)
        stale: list[int] = []
        for tab in payload.to_tabs():
            if wanted and tab.id not in wanted:
                continue
            decision = organize_tab(
                tab, state.domains, state.keywords, lambda window_id: window_id in open_windows
            )
            print(describe_decision(decision))
            if decision.outcome is OrganizeOutcome.STALE_TARGET:
                stale.append(decision.target_window_id)
        if prune:
            for window_id in dict.fromkeys(stale):
                delete_window_assignments(conn, window_id)


@app.command()
def cleanup(
    snapshot: Path = typer.Argument(..., help="JSON file with the open tabs and windows."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list stale windows."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Remove assignments that belong to windows which are no longer open."""
    payload = _load(snapshot)
    with database_connection(get_db_path(db_path)) as conn:
        stale = stale_window_ids(fetch_assignments(conn), payload.open_window_ids())
        if not stale:
            print("No stale window assignments.")
            return
        for window_id in stale:
            if dry_run:
                print(f"Window {window_id} is closed")
                continue
            delete_window_assignments(conn, window_id)
            print(f"Removed assignments for closed window {window_id}")


@app.command()
def assignments(
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Print the domain and keyword assignments of every window."""
    with database_connection(get_db_path(db_path)) as conn:
        state = fetch_assignments(conn)
    print_assignments(state)


@app.command()
def assign(
    window_id: int = typer.Argument(..., help="Target window id."),
    domains: Optional[List[str]] = typer.Option(
        None, "--domain", help="Domain key, or a URL on that domain, to assign."
    ),
    keywords: Optional[List[str]] = typer.Option(None, "--keyword", help="Keyword to assign."),
    nickname: Optional[str] = typer.Option(None, "--nickname", help="Display name for the window."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Assign domains, keywords or a nickname to a window."""
    if not (domains or keywords or nickname is not None):
        raise typer.BadParameter("nothing to assign; pass --domain, --keyword or --nickname")
    with database_connection(get_db_path(db_path)) as conn:
        state = fetch_assignments(conn)
        try:
            for domain in domains or []:
                # A pasted URL is reduced to the domain key its tabs would produce.
                domain = domain_key_for(domain) or domain
                previous = state.window_for_domain(domain)
                state = state.assign_domain(window_id, domain)
                if previous is not None and previous != window_id:
                    print(f"Moved {domain.strip().lower()} from window {previous}")
            for keyword in keywords or []:
                state = state.assign_keyword(window_id, keyword)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        if nickname is not None:
            state = state.set_nickname(window_id, nickname)
        save_assignments(conn, state)
    print_assignments(state)


@app.command()
def unassign(
    window_id: int = typer.Argument(..., help="Window id."),
    domains: Optional[List[str]] = typer.Option(None, "--domain", help="Domain key to remove."),
    keywords: Optional[List[str]] = typer.Option(None, "--keyword", help="Keyword to remove."),
    all_: bool = typer.Option(False, "--all", help="Forget everything assigned to the window."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Remove assignments from a window."""
    with database_connection(get_db_path(db_path)) as conn:
        if all_:
            delete_window_assignments(conn, window_id)
            state = fetch_assignments(conn)
        else:
            state = fetch_assignments(conn)
            for domain in domains or []:
                state = state.unassign_domain(window_id, domain)
            for keyword in keywords or []:
                state = state.unassign_keyword(window_id, keyword)
            save_assignments(conn, state)
    print_assignments(state)


@app.command()
def settings(
    mode: Optional[str] = typer.Option(None, "--mode", help="Match preset or legacy mode."),
    keep_newest: Optional[bool] = typer.Option(
        None, "--keep-newest/--keep-oldest", help="Which tab of a duplicate group to keep."
    ),
    threshold: Optional[int] = typer.Option(
        None, "--threshold", min=1, help="Default consolidation threshold."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Show or update stored preferences."""
    with database_connection(get_db_path(db_path)) as conn:
        current = fetch_settings(conn)
        if mode is not None or keep_newest is not None or threshold is not None:
            current.match_config = _match_config(mode, current)
            if keep_newest is not None:
                current.keep_newest = keep_newest
            if threshold is not None:
                current.consolidation_threshold = threshold
            save_settings(conn, current)
    print(f"Match facets:  {', '.join(current.match_config.enabled)}")
    print(f"Keep:          {'newest' if current.keep_newest else 'oldest'}")
    print(f"Threshold:     {current.consolidation_threshold}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=_DB_HELP),
) -> None:
    """Start the local HTTP API used by the browser extension."""
    from .server_runner import run_server

    run_server(host=host, port=port, db_path=get_db_path(db_path))
