"""SQLite-backed key-value storage for assignments, settings and notified tabs."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .assignments import AssignmentState
from .config import EngineSettings

logger = logging.getLogger(__name__)

DOMAINS_KEY = "windowDomains"
KEYWORDS_KEY = "windowKeywords"
NICKNAMES_KEY = "windowNicknames"
SETTINGS_KEY = "settings"

ASSIGNMENT_KEYS = (DOMAINS_KEY, KEYWORDS_KEY, NICKNAMES_KEY)


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS notified_tabs (
            tab_id INTEGER PRIMARY KEY,
            notified_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );
        """
    )


def read_value(conn: sqlite3.Connection, key: str, default: Any = None) -> Any:
    row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    if row is None:
        return default
    return json.loads(row["value"])


def write_value(conn: sqlite3.Connection, key: str, value: Any) -> None:
    conn.execute(
        """
        INSERT INTO kv_store (key, value, updated_at)
        VALUES (?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(key) DO UPDATE SET
            value = excluded.value,
            updated_at = excluded.updated_at
        """,
        (key, json.dumps(value)),
    )


def fetch_assignments(conn: sqlite3.Connection) -> AssignmentState:
    return AssignmentState.from_raw(
        read_value(conn, DOMAINS_KEY, {}),
        read_value(conn, KEYWORDS_KEY, {}),
        read_value(conn, NICKNAMES_KEY, {}),
    )


def save_assignments(conn: sqlite3.Connection, state: AssignmentState) -> None:
    for key, value in state.to_raw().items():
        write_value(conn, key, value)


def delete_window_assignments(conn: sqlite3.Connection, window_id: int) -> list[str]:
    """Remove a closed window from every stored mapping.

    Each mapping is rewritten on its own, so a failure on one leaves the
    others intact. Returns the keys that actually changed.
    """
    changed: list[str] = []
    for key in ASSIGNMENT_KEYS:
        stored = read_value(conn, key, {})
        if str(window_id) not in stored:
            continue
        del stored[str(window_id)]
        write_value(conn, key, stored)
        changed.append(key)
        logger.info("Removed %s entry for closed window %s", key, window_id)
    return changed


def fetch_settings(conn: sqlite3.Connection) -> EngineSettings:
    return EngineSettings.from_mapping(read_value(conn, SETTINGS_KEY, {}))


def save_settings(conn: sqlite3.Connection, settings: EngineSettings) -> None:
    write_value(conn, SETTINGS_KEY, settings.to_mapping())


class SqliteNotifiedStore:
    """Notified-tab set that survives restarts of the host process."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def mark_notified(self, tab_id: int) -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO notified_tabs (tab_id) VALUES (?)", (tab_id,)
        )

    def clear_notified(self, tab_id: int) -> None:
        self._conn.execute("DELETE FROM notified_tabs WHERE tab_id = ?", (tab_id,))

    def is_notified(self, tab_id: int) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM notified_tabs WHERE tab_id = ?", (tab_id,)
        ).fetchone()
        return row is not None
