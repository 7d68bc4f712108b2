"""Helpers for locating the TabWife data directory and storage file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs


APP_NAME = "TabWife"
APP_AUTHOR = "TabWife"
DB_ENV_VAR = "TABWIFE_DB"
LOG_ENV_VAR = "TABWIFE_LOG"


def get_data_dir() -> Path:
    """Return the per-user directory holding assignments and settings."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path(explicit: Optional[Path] = None) -> Path:
    """Pick the storage file: explicit path, then ``$TABWIFE_DB``, then the data dir."""
    if explicit is not None:
        return Path(explicit)
    from_env = os.environ.get(DB_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return get_data_dir() / "tabwife.sqlite3"


def get_log_path() -> Path:
    """Log file used by ``--log-to-file``: ``$TABWIFE_LOG`` or the data dir."""
    from_env = os.environ.get(LOG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return get_data_dir() / "tabwife.log"
