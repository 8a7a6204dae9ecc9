"""
Catalog aggregation and search.

Date: 2026-10-18
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .models import CatalogEntry, CompositeKey, Item, Kind

logger = logging.getLogger(__name__)


def _as_items(value: Any, kind: Kind) -> List[Item]:
    if not isinstance(value, (list, tuple)):
        if value is not None:
            logger.warning("Ignoring non-sequence %s collection (%s)", kind.value, type(value).__name__)
        return []
    return [v for v in value if isinstance(v, Item)]


def aggregate(artisans: Any, places: Any) -> List[CatalogEntry]:
    """Merge the two item collections into one kind-tagged catalog.

    Artisans come first, then places, each in their original order. A
    collection that is not a sequence counts as empty. Should the backend
    repeat an id within a kind, the first occurrence wins so composite keys
    stay unique.

    Args:
        artisans: Sequence of artisan Items.
        places: Sequence of place Items.

    Returns:
        List of CatalogEntry.
    """
    entries = []
    seen = set()
    for kind, items in ((Kind.ARTISAN, artisans), (Kind.PLACE, places)):
        for item in _as_items(items, kind):
            entry = CatalogEntry(kind, item)
            if entry.key in seen:
                logger.warning("Duplicate %s id %s ignored", kind.value, item.id)
                continue
            seen.add(entry.key)
            entries.append(entry)
    return entries


def matches(entry: CatalogEntry, needle: str) -> bool:
    """Check whether an entry matches a lowercased query."""
    item = entry.item
    return (
        needle in item.name.lower()
        or needle in (item.description or "").lower()
        or needle in entry.subtitle.lower()
    )


def filter_catalog(entries: Sequence[CatalogEntry], query: str) -> Sequence[CatalogEntry]:
    """Derive the filtered view of the catalog.

    Matching is a case-insensitive substring test against name, description
    and category/type. An empty query returns ``entries`` itself.

    Args:
        entries: Aggregated catalog.
        query: Search text.

    Returns:
        Entries matching the query, in catalog order.
    """
    if not query:
        return entries
    needle = query.lower()
    return [e for e in entries if matches(e, needle)]


def find_entry(entries: Iterable[CatalogEntry], key: CompositeKey) -> Optional[CatalogEntry]:
    return next((e for e in entries if e.key == key), None)
