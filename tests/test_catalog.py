"""
Tests for catalog aggregation and search.

Run with: python -m pytest tests/test_catalog.py
"""

from logic.catalog import aggregate, filter_catalog, find_entry
from logic.models import Kind

from conftest import make_item, sample_artisans, sample_places


def test_aggregate_orders_artisans_before_places():
    catalog = aggregate(sample_artisans(), sample_places())

    assert [e.kind for e in catalog] == [Kind.ARTISAN, Kind.ARTISAN, Kind.PLACE, Kind.PLACE]
    assert [e.item.name for e in catalog][:2] == ["Taller Xóchitl", "Textiles Doña Rosa"]
    assert catalog[2].key == (Kind.PLACE, 1)


def test_aggregate_same_id_in_both_kinds_is_two_entries():
    catalog = aggregate(sample_artisans(), sample_places())
    keys = [e.key for e in catalog]

    assert (Kind.ARTISAN, 1) in keys
    assert (Kind.PLACE, 1) in keys
    assert len(set(keys)) == len(keys)


def test_aggregate_tolerates_malformed_inputs():
    places = sample_places()

    assert aggregate(None, None) == []
    assert aggregate({"id": 1}, "not a list") == []
    assert [e.key for e in aggregate(42, places)] == [(Kind.PLACE, 1), (Kind.PLACE, 7)]
    assert len(aggregate([], places)) == 2


def test_aggregate_drops_duplicate_ids_within_a_kind():
    artisans = [make_item(3, "Primero"), make_item(3, "Repetido")]

    catalog = aggregate(artisans, [])

    assert len(catalog) == 1
    assert catalog[0].item.name == "Primero"


def test_empty_query_returns_catalog_unchanged():
    catalog = aggregate(sample_artisans(), sample_places())

    assert filter_catalog(catalog, "") is catalog


def test_filter_is_case_insensitive_substring():
    catalog = aggregate(sample_artisans(), sample_places())

    assert [e.item.name for e in filter_catalog(catalog, "TULA")] == ["Zona Arqueológica de Tula"]
    assert [e.item.name for e in filter_catalog(catalog, "alfarer")] == ["Taller Xóchitl"]
    assert [e.item.name for e in filter_catalog(catalog, "templo")] == ["Catedral de San José"]
    assert [e.item.name for e in filter_catalog(catalog, "TENANGO")] == ["Textiles Doña Rosa"]


def test_filter_is_not_tokenized():
    catalog = aggregate(sample_artisans(), sample_places())

    assert filter_catalog(catalog, "tula zona") == []
    assert len(filter_catalog(catalog, "zona arqueológica de")) == 1


def test_filter_returns_ordered_subsequence():
    catalog = aggregate(sample_artisans(), sample_places())

    for query in ["a", "o", "de", "ta", "é", "xyz", " "]:
        result = filter_catalog(catalog, query)
        positions = [catalog.index(e) for e in result]
        assert positions == sorted(positions), query
        for entry in result:
            fields = [entry.item.name, entry.item.description or "", entry.subtitle]
            assert any(query.lower() in f.lower() for f in fields), (query, entry.key)


def test_filter_matches_type_for_places_without_category():
    catalog = aggregate([], [make_item(9, "Mirador", type="Paisaje")])

    assert len(filter_catalog(catalog, "paisa")) == 1


def test_find_entry():
    catalog = aggregate(sample_artisans(), sample_places())

    assert find_entry(catalog, (Kind.PLACE, 7)).item.name == "Catedral de San José"
    assert find_entry(catalog, (Kind.ARTISAN, 7)) is None
