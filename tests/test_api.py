"""
Tests for the HTTP API.

Run with: python -m pytest tests/test_api.py
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from audit_service import MutationJournal
from database import init_db
from main import app
from server.state import AppState, set_state

from conftest import FakeGateway

client = TestClient(app)

DEMO_LOGIN = {"email": "admin@tula.mx", "password": "tula2024"}


@pytest.fixture(autouse=True)
def fresh_state(monkeypatch):
    monkeypatch.delenv("TULA_DEMO_EMAIL", raising=False)
    monkeypatch.delenv("TULA_DEMO_PASSWORD", raising=False)
    yield
    set_state(None)


def install(gateway=None, fragment=None, journal=None):
    state = AppState(gateway=gateway or FakeGateway(), fragment=fragment, journal=journal)
    set_state(state)
    return state


def go_admin_and_login(credentials=DEMO_LOGIN):
    client.post("/api/route", json={"fragment": "#/super-admin"})
    return client.post("/api/admin/login", json=credentials)


# ============================================================
# Navigation
# ============================================================


def test_route_defaults_to_public():
    """Test GET /api/route starts on the public explorer."""
    install()

    response = client.get("/api/route")

    assert response.status_code == 200
    assert response.json() == {"route": "public", "fragment": ""}


def test_route_switch_disposes_explorer():
    """Test switching to the admin fragment replaces the explorer view."""
    state = install()
    explorer = state.view
    client.post("/api/map/ready")

    response = client.post("/api/route", json={"fragment": "#/super-admin"})

    assert response.json() == {"route": "admin", "changed": True}
    assert explorer.disposed
    assert client.get("/api/explorer").status_code == 409


# ============================================================
# Public explorer
# ============================================================


def test_explorer_loads_catalog_on_first_read():
    """Test GET /api/explorer loads and aggregates both collections."""
    install()

    data = client.get("/api/explorer").json()

    assert data["total"] == 4
    assert [i["kind"] for i in data["items"]] == ["artisan", "artisan", "place", "place"]
    assert data["notice"] is None


def test_explorer_falls_back_when_backend_down():
    """Test the explorer serves sample data with a warning when offline."""
    install(FakeGateway(offline=True))

    data = client.get("/api/explorer").json()

    assert [i["name"] for i in data["items"]] == ["Taller de Alfarería Xóchitl", "Zona Arqueológica de Tula"]
    assert data["notice"]["level"] == "warning"


def test_search_filters_and_notifies():
    """Test POST /api/explorer/search filters and broadcasts the new view."""
    install()
    client.post("/api/map/ready")

    with patch("server.routes.notify_view_updated", new_callable=AsyncMock) as notify:
        response = client.post("/api/explorer/search", json={"query": "TEXTIL"})

    assert response.status_code == 200
    assert [i["name"] for i in response.json()["items"]] == ["Textiles Doña Rosa"]
    assert response.json()["map"]["markers"] == 1
    notify.assert_awaited_once()


def test_focus_requires_visible_entry():
    """Test POST /api/explorer/focus only accepts entries in the filtered view."""
    install()
    client.post("/api/map/ready")
    client.post("/api/explorer/search", json={"query": "catedral"})

    hidden = client.post("/api/explorer/focus", json={"kind": "artisan", "id": 1})
    visible = client.post("/api/explorer/focus", json={"kind": "place", "id": 7})

    assert hidden.status_code == 404
    assert visible.status_code == 200
    assert visible.json()["focused"] == {"kind": "place", "id": 7}
    assert client.get("/api/explorer").json()["focused"] == {"kind": "place", "id": 7}


def test_marker_click_focuses_entry():
    """Test a marker click forwarded by the browser focuses its entry."""
    state = install()
    client.post("/api/map/ready")
    client.get("/api/explorer")
    marker = next(m for m in state.view.engine.markers() if "Catedral" in m["popup"])

    response = client.post(f"/api/map/markers/{marker['id']}/click")

    assert response.status_code == 200
    assert state.view.selection.focused is not None
    assert client.post("/api/map/markers/nope/click").status_code == 404


def test_map_click_before_map_exists():
    """Test POST /api/map/click answers 409 until the map is ready."""
    install()

    assert client.post("/api/map/click", json={"lat": 20.0, "lng": -99.0}).status_code == 409


# ============================================================
# Super-admin
# ============================================================


def test_admin_endpoints_require_admin_route():
    """Test admin endpoints answer 409 on the public route."""
    install()

    assert client.get("/api/admin/state").status_code == 409


def test_admin_mutations_require_login():
    """Test mutation endpoints answer 401 without a session."""
    install(fragment="#/super-admin")

    assert client.post("/api/admin/submit").status_code == 401
    assert client.post("/api/admin/draft", json={"name": "x"}).status_code == 401


def test_rejected_login():
    """Test POST /api/admin/login answers 401 with the session error."""
    install(FakeGateway(reject_login=True))

    response = go_admin_and_login()

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_demo_login_when_backend_down():
    """Test the demo pair opens a session with sample places when offline."""
    install(FakeGateway(offline=True))

    response = go_admin_and_login()

    assert response.status_code == 200
    data = response.json()
    assert data["session"]["demo"] is True
    assert [p["name"] for p in data["places"]] == ["Zona Arqueológica de Tula"]


def test_create_place_through_draft_and_map_click():
    """Test the draft, map click and submit flow creates a place."""
    state = install()
    go_admin_and_login()
    client.post("/api/map/ready")

    draft = client.post("/api/admin/draft", json={"name": "Mirador", "type": "Paisaje"})
    client.post("/api/map/click", json={"lat": 20.06, "lng": -99.34})
    with patch("server.admin.notify_view_updated", new_callable=AsyncMock):
        response = client.post("/api/admin/submit")

    assert draft.json()["errors"] == []
    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "synced"
    assert data["item"] == {"id": 100, "name": "Mirador", "type": "Paisaje", "lat": 20.06, "lng": -99.34}
    assert data["state"]["draft"]["name"] == ""
    assert data["state"]["map"]["placement"] is False
    assert state.view.engine.marker_count == 3


def test_submit_invalid_draft():
    """Test POST /api/admin/submit answers 422 with field errors."""
    install()
    go_admin_and_login()

    client.post("/api/admin/draft", json={"name": "Mirador", "lat": "norte"})
    response = client.post("/api/admin/submit")

    assert response.status_code == 422
    fields = {e["field"] for e in response.json()["detail"]["errors"]}
    assert fields == {"lat", "lng"}


def test_edit_and_update_place():
    """Test editing an existing place and submitting the change."""
    install()
    go_admin_and_login()

    edit = client.post("/api/admin/edit/7")
    client.post("/api/admin/draft", json={"name": "Catedral de Tula"})
    with patch("server.admin.notify_view_updated", new_callable=AsyncMock):
        response = client.post("/api/admin/submit")

    assert edit.json()["editing_id"] == 7
    assert response.json()["item"]["name"] == "Catedral de Tula"
    assert response.json()["state"]["editing_id"] is None
    assert client.post("/api/admin/edit/999").status_code == 404


def test_delete_requires_confirmation():
    """Test the stage, cancel and confirm flow for deleting a place."""
    install()
    go_admin_and_login()

    assert client.post("/api/admin/delete/confirm").status_code == 400
    assert client.post("/api/admin/places/999/delete").status_code == 404

    staged = client.post("/api/admin/places/7/delete")
    assert staged.json()["pending_delete"] == 7
    client.post("/api/admin/delete/cancel")
    assert client.post("/api/admin/delete/confirm").status_code == 400

    client.post("/api/admin/places/7/delete")
    with patch("server.admin.notify_view_updated", new_callable=AsyncMock):
        response = client.post("/api/admin/delete/confirm")

    assert response.json()["outcome"] == "synced"
    assert [p["id"] for p in response.json()["state"]["places"]] == [1]


def test_logout_clears_places():
    """Test POST /api/admin/logout drops the session and its places."""
    install()
    go_admin_and_login()

    data = client.post("/api/admin/logout").json()

    assert data["session"]["authenticated"] is False
    assert data["places"] == []


def test_journal_lists_degraded_mutations(tmp_path):
    """Test GET /api/admin/journal returns journalled mutations."""
    init_db(f"sqlite:///{tmp_path}/api.db")
    gateway = FakeGateway()
    install(gateway, journal=MutationJournal)
    go_admin_and_login()
    gateway.offline = True

    client.post("/api/admin/places/7/delete")
    with patch("server.admin.notify_view_updated", new_callable=AsyncMock):
        client.post("/api/admin/delete/confirm")

    entries = client.get("/api/admin/journal", params={"outcome": "degraded"}).json()["entries"]
    csv_text = client.get("/api/admin/journal", params={"fmt": "csv"}).text

    assert [(e["action"], e["entity_id"]) for e in entries] == [("delete", "7")]
    assert "delete,degraded" in csv_text
