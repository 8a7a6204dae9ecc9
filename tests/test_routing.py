"""
Tests for route selection and view switching.

Run with: python -m pytest tests/test_routing.py
"""

import pytest

from logic.routing import Route, RouteSelector, route_for_fragment
from server.map_engine import BroadcastMapEngine
from server.state import AppState
from server.views import AdminView, ExplorerView

from conftest import FakeGateway


@pytest.mark.parametrize(
    "fragment,expected",
    [
        ("#/super-admin", Route.ADMIN),
        ("#super-admin", Route.ADMIN),
        ("#/super-admin/", Route.ADMIN),
        ("#/SUPER-ADMIN", Route.ADMIN),
        ("", Route.PUBLIC),
        (None, Route.PUBLIC),
        ("#/", Route.PUBLIC),
        ("#/super-admin/places", Route.PUBLIC),
    ],
)
def test_route_for_fragment(fragment, expected):
    assert route_for_fragment(fragment) == expected


def test_selector_notifies_only_on_change():
    selector = RouteSelector()
    changes = []
    selector.subscribe(lambda old, new: changes.append((old, new)))

    assert selector.set_fragment("#/") is False
    assert selector.set_fragment("#/super-admin") is True
    assert selector.set_fragment("#super-admin") is False
    assert selector.set_fragment("") is True

    assert changes == [(Route.PUBLIC, Route.ADMIN), (Route.ADMIN, Route.PUBLIC)]
    assert selector.fragment == ""


def test_unsubscribe_stops_notifications():
    selector = RouteSelector("#/super-admin")
    changes = []
    unsubscribe = selector.subscribe(lambda old, new: changes.append(new))

    unsubscribe()
    unsubscribe()
    selector.set_fragment("#/")

    assert changes == []
    assert selector.route == Route.PUBLIC


@pytest.mark.asyncio
async def test_route_change_disposes_previous_view():
    events = []
    state = AppState(
        gateway=FakeGateway(),
        engine_factory=lambda: BroadcastMapEngine(publish=events.append),
    )
    explorer = state.view
    assert isinstance(explorer, ExplorerView)
    explorer.ensure_map()
    await explorer.load()
    assert explorer.engine.marker_count == 4

    assert state.navigate("#/super-admin") is True

    assert explorer.disposed
    assert explorer.engine.created is False
    assert isinstance(state.view, AdminView)
    assert state.view.engine is None
    types = [e["type"] for e in events]
    assert types.count("marker_remove") == 4
    assert types[-1] == "map_destroy"


def test_same_route_keeps_view():
    state = AppState(gateway=FakeGateway(), fragment="#/super-admin")
    admin = state.view

    assert state.navigate("#super-admin") is False
    assert state.view is admin

    state.close()
    assert admin.disposed
