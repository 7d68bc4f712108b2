from tabwife.assignments import AssignmentState
from tabwife.config import EngineSettings, MatchConfig
from tabwife.db import (
    DOMAINS_KEY,
    KEYWORDS_KEY,
    NICKNAMES_KEY,
    SqliteNotifiedStore,
    database_connection,
    delete_window_assignments,
    fetch_assignments,
    fetch_settings,
    read_value,
    save_assignments,
    save_settings,
    write_value,
)


def test_assignments_are_stored_in_extension_shape(tmp_path):
    db_path = tmp_path / "tabwife.sqlite3"
    state = (
        AssignmentState()
        .assign_domain(2, "github.com")
        .assign_keyword(3, "Jira")
        .set_nickname(2, "Code")
    )

    with database_connection(db_path) as conn:
        save_assignments(conn, state)

    with database_connection(db_path) as conn:
        assert read_value(conn, DOMAINS_KEY) == {"2": ["github.com"]}
        assert read_value(conn, KEYWORDS_KEY) == {"3": ["Jira"]}
        assert read_value(conn, NICKNAMES_KEY) == {"2": "Code"}
        assert fetch_assignments(conn) == state


def test_empty_database_yields_empty_state_and_default_settings(tmp_path):
    with database_connection(tmp_path / "empty.sqlite3") as conn:
        assert fetch_assignments(conn).window_ids() == []
        assert fetch_settings(conn) == EngineSettings()


def test_delete_window_assignments_touches_only_present_keys(tmp_path):
    with database_connection(tmp_path / "db.sqlite3") as conn:
        write_value(conn, DOMAINS_KEY, {"5": ["example.com"], "6": ["other.org"]})
        write_value(conn, NICKNAMES_KEY, {"5": "Shopping"})

        removed = delete_window_assignments(conn, 5)

        assert removed == [DOMAINS_KEY, NICKNAMES_KEY]
        assert read_value(conn, DOMAINS_KEY) == {"6": ["other.org"]}
        assert read_value(conn, KEYWORDS_KEY) is None
        assert delete_window_assignments(conn, 5) == []


def test_settings_persist(tmp_path):
    db_path = tmp_path / "db.sqlite3"
    settings = EngineSettings(match_config=MatchConfig.from_mode("strict"), keep_newest=False)

    with database_connection(db_path) as conn:
        save_settings(conn, settings)
    with database_connection(db_path) as conn:
        assert fetch_settings(conn) == settings


def test_sqlite_notified_store(tmp_path):
    with database_connection(tmp_path / "db.sqlite3") as conn:
        store = SqliteNotifiedStore(conn)
        store.mark_notified(11)
        store.mark_notified(11)

        assert store.is_notified(11)
        assert not store.is_notified(12)

        store.clear_notified(11)
        assert not store.is_notified(11)
