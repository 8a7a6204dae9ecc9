"""
Tests for the explorer selection state.

Run with: python -m pytest tests/test_selection.py
"""

from logic.catalog import aggregate, filter_catalog, find_entry
from logic.config import FOCUS_ZOOM
from logic.models import Kind
from logic.selection import SelectionState
from server.map_engine import BroadcastMapEngine

from conftest import make_item, sample_artisans, sample_places


def make_engine():
    events = []
    engine = BroadcastMapEngine(publish=events.append)
    engine.create({"lat": 20.0, "lng": -99.0}, 12)
    return engine, events


def fly_events(events):
    return [e for e in events if e["type"] == "fly_to"]


def test_focus_moves_camera_once():
    engine, events = make_engine()
    catalog = aggregate(sample_artisans(), sample_places())
    selection = SelectionState()
    selection.sync(catalog)

    entry = find_entry(catalog, (Kind.ARTISAN, 1))
    assert selection.focus(entry, engine) is True
    assert selection.focused == (Kind.ARTISAN, 1)
    assert engine.camera == {"lat": 20.0589, "lng": -99.3421, "zoom": FOCUS_ZOOM}

    # Same key again is not a transition
    assert selection.focus(entry, engine) is False
    assert len(fly_events(events)) == 1


def test_focus_rejects_entry_outside_view():
    engine, events = make_engine()
    catalog = aggregate(sample_artisans(), sample_places())
    selection = SelectionState()
    selection.sync(filter_catalog(catalog, "tula"))

    assert selection.focus(find_entry(catalog, (Kind.ARTISAN, 1)), engine) is False
    assert selection.focused is None
    assert fly_events(events) == []


def test_query_excluding_focus_clears_selection_without_camera_move():
    engine, events = make_engine()
    catalog = aggregate(sample_artisans(), sample_places())
    selection = SelectionState()
    selection.sync(catalog)
    selection.focus(find_entry(catalog, (Kind.ARTISAN, 1)), engine)

    cleared = selection.sync(filter_catalog(catalog, "catedral"))

    assert cleared is True
    assert selection.focused is None
    assert len(fly_events(events)) == 1


def test_focus_survives_query_that_keeps_it():
    catalog = aggregate(sample_artisans(), sample_places())
    selection = SelectionState()
    selection.sync(catalog)
    selection.focus(find_entry(catalog, (Kind.PLACE, 7)))

    assert selection.sync(filter_catalog(catalog, "san josé")) is False
    assert selection.focused == (Kind.PLACE, 7)


def test_focus_without_coordinates_does_not_move_camera():
    engine, events = make_engine()
    catalog = aggregate([make_item(5, "Sin mapa", lat=None, lng=None)], [])
    selection = SelectionState()
    selection.sync(catalog)

    assert selection.focus(catalog[0], engine) is True
    assert fly_events(events) == []


def test_focused_key_always_in_filtered_view():
    catalog = aggregate(sample_artisans(), sample_places())
    selection = SelectionState()
    queries = ["", "a", "tula", "", "x", "de", "TEXTIL", "", "catedral", "o"]

    for step, query in enumerate(queries):
        view = filter_catalog(catalog, query)
        selection.sync(view)
        keys = {e.key for e in view}
        if selection.focused is not None:
            assert selection.focused in keys
        if view:
            selection.focus(view[step % len(view)])
            assert selection.focused in keys
