import pytest
from fastapi.testclient import TestClient

from tabwife.webapp import create_app

TABS = [
    {"id": 1, "url": "https://example.com/a?b=2&a=1", "title": "A", "windowId": 1},
    {"id": 2, "url": "https://example.com/a?a=1&b=2", "title": "A", "windowId": 2},
    {"id": 3, "url": "https://github.com/org", "title": "Jira integration", "windowId": 1, "active": True},
    {"id": 4, "url": "https://tracker.io/jira/1", "title": "Ticket", "windowId": 1},
]


@pytest.fixture()
def client(tmp_path):
    app = create_app(db_path=tmp_path / "api.sqlite3")
    with TestClient(app) as test_client:
        yield test_client


def test_status_reports_database(client, tmp_path):
    body = client.get("/api/status").json()

    assert body["database_path"].endswith("api.sqlite3")
    assert body["notified_tabs"] == 0


def test_duplicates_endpoint_marks_newly_seen_tabs(client):
    first = client.post("/api/duplicates", json={"tabs": TABS}).json()
    second = client.post("/api/duplicates", json={"tabs": TABS}).json()

    assert first["total_duplicate_count"] == 1
    assert first["groups"][0]["keeper"]["id"] == 2
    assert first["closable_tab_ids"] == [1]
    assert first["newly_seen"] == [1, 2]
    assert second["newly_seen"] == []

    client.delete("/api/tabs/1")
    third = client.post("/api/duplicates", json={"tabs": TABS}).json()
    assert third["newly_seen"] == [1]


def test_duplicates_endpoint_validates_mode(client):
    response = client.post("/api/duplicates", json={"tabs": TABS, "match_mode": "fuzzy"})

    assert response.status_code == 400


def test_check_duplicate_endpoint_sets_badge_once(client):
    payload = {"tab": TABS[0], "tabs": TABS}

    first = client.post("/api/duplicates/check", json=payload).json()
    second = client.post("/api/duplicates/check", json=payload).json()

    assert first == {"tab_id": 1, "duplicate_ids": [2], "notify": True, "badge_count": 2}
    assert second["notify"] is False


def test_assignments_resolve_and_plan(client):
    client.post("/api/assignments", json={"window_id": 2, "domain": "github.com", "nickname": "Code"})
    client.post("/api/assignments", json={"window_id": 2, "keyword": "jira"})

    assert client.get("/api/assignments").json() == {
        "windowDomains": {"2": ["github.com"]},
        "windowKeywords": {"2": ["jira"]},
        "windowNicknames": {"2": "Code"},
    }
    resolved = client.post("/api/resolve", json={"tab": TABS[3]}).json()
    assert resolved == {"tab_id": 4, "window_id": 2}

    suggestions = client.post("/api/plan", json={"tabs": TABS}).json()["suggestions"]
    assert [(s["tier"], s["label"], s["target_nickname"]) for s in suggestions] == [
        (1, "github.com", "Code"),
        (2, "jira", "Code"),
    ]


def test_organize_moves_active_tab_and_prunes_stale_window(client):
    client.post("/api/assignments", json={"window_id": 2, "domain": "github.com"})
    client.post("/api/assignments", json={"window_id": 9, "keyword": "ticket"})

    moved = client.post("/api/organize", json={"tab": TABS[2], "tabs": TABS}).json()
    stale = client.post("/api/organize", json={"tab": TABS[3], "tabs": TABS}).json()

    assert moved["outcome"] == "move"
    assert moved["window_id"] == 2
    assert moved["activate"] is True
    assert stale["outcome"] == "stale_target"
    assert stale["removed"] == ["windowKeywords"]
    assert client.get("/api/assignments").json()["windowKeywords"] == {}


def test_organize_respects_disabled_setting(client):
    client.put("/api/settings", json={"auto_organize": False})

    body = client.post("/api/organize", json={"tab": TABS[2], "tabs": TABS}).json()

    assert body["outcome"] == "disabled"


def test_settings_round_trip(client):
    updated = client.put(
        "/api/settings", json={"match_mode": "strict", "consolidation_threshold": 5}
    ).json()

    assert updated["consolidationThreshold"] == 5
    assert all(updated["matchFacets"].values())
    assert client.get("/api/settings").json() == updated


def test_window_closed_and_cleanup_endpoints(client):
    client.post("/api/assignments", json={"window_id": 5, "domain": "a.io"})
    client.post("/api/assignments", json={"window_id": 6, "domain": "b.io"})
    client.post("/api/assignments", json={"window_id": 1, "domain": "c.io"})

    closed = client.delete("/api/windows/5").json()
    cleaned = client.post("/api/windows/cleanup", json={"tabs": TABS}).json()

    assert closed == {"window_id": 5, "removed": ["windowDomains"]}
    assert cleaned == {"removed_windows": [6]}
    assert client.get("/api/assignments").json()["windowDomains"] == {"1": ["c.io"]}
