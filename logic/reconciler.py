"""
Map marker reconciliation.

The reconciler is the only owner of the markers it puts on a map engine. It
keeps an arena keyed by composite key, diffs each new snapshot against it and
issues the minimal add/remove/replace/move calls. Every handle it creates is
removed exactly once: on a later pass, on replacement, or on teardown.

Engine misbehaviour (an exception or an unusable handle) costs one marker,
never the pass.

Date: 2026-10-18
"""

import logging
from dataclasses import dataclass
from html import escape
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .config import MARKER_COLORS
from .models import CatalogEntry, CompositeKey

logger = logging.getLogger(__name__)

PLACEMENT_POPUP = "<strong>Nueva ubicación</strong>"


@dataclass
class ReconcileStats:
    """Counters for one reconciliation pass."""

    added: int = 0
    removed: int = 0
    replaced: int = 0
    moved: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def operations(self) -> int:
        return self.added + self.removed + self.replaced + self.moved


@dataclass
class _MarkerRecord:
    handle: Any
    appearance: Tuple[str, str]
    position: Tuple[float, float]


def marker_color(entry: CatalogEntry, editing: bool = False) -> str:
    if editing:
        return MARKER_COLORS["editing"]
    return MARKER_COLORS[entry.kind.value]


def popup_html(entry: CatalogEntry) -> str:
    return f"<strong>{escape(entry.item.name)}</strong><br/>{entry.kind.label}"


def _usable(handle: Any) -> bool:
    return handle is not None and getattr(handle, "id", None) is not None


class MarkerReconciler:
    """Keeps an engine's catalog markers equal to the latest snapshot.

    Args:
        engine: Map engine the markers live on.
        on_select: Called with the composite key of a clicked marker.
    """

    def __init__(self, engine, on_select: Optional[Callable[[CompositeKey], None]] = None):
        self._engine = engine
        self._on_select = on_select
        self._arena: Dict[CompositeKey, _MarkerRecord] = {}
        self._placement = None
        self._torn_down = False

    @property
    def keys(self):
        return set(self._arena)

    @property
    def placement_handle(self):
        return self._placement

    def handle_for(self, key: CompositeKey):
        record = self._arena.get(key)
        return record.handle if record else None

    def reconcile(
        self, entries: Sequence[CatalogEntry], editing_key: Optional[CompositeKey] = None
    ) -> ReconcileStats:
        """Make the engine's markers match ``entries``.

        Args:
            entries: Desired catalog snapshot.
            editing_key: Key of the entry being edited, drawn with the
                editing style.

        Returns:
            ReconcileStats for the pass.
        """
        stats = ReconcileStats()
        if self._torn_down:
            logger.warning("reconcile() called after teardown; ignoring")
            return stats

        desired: Dict[CompositeKey, CatalogEntry] = {}
        for entry in entries:
            if entry.key in desired:
                continue
            if not entry.item.has_position():
                stats.skipped += 1
                continue
            desired[entry.key] = entry

        for key in [k for k in self._arena if k not in desired]:
            self._release(key)
            stats.removed += 1

        for key, entry in desired.items():
            appearance = (marker_color(entry, key == editing_key), popup_html(entry))
            position = (entry.item.lat, entry.item.lng)
            record = self._arena.get(key)

            if record is None:
                if self._add(key, entry, appearance, position):
                    stats.added += 1
                else:
                    stats.failed += 1
            elif record.appearance != appearance:
                self._release(key)
                if self._add(key, entry, appearance, position):
                    stats.replaced += 1
                else:
                    stats.removed += 1
                    stats.failed += 1
            elif record.position != position:
                try:
                    self._engine.move_marker(record.handle, *position)
                    record.position = position
                    stats.moved += 1
                except Exception as e:
                    logger.warning("Could not move marker for %s: %s", key, e)
                    stats.failed += 1

        if stats.operations or stats.failed:
            logger.debug("Reconciled markers: %s", stats)
        return stats

    def _add(self, key, entry, appearance, position) -> bool:
        color, popup = appearance
        try:
            handle = self._engine.add_marker(
                position[0], position[1], color, popup, kind=entry.kind.value
            )
        except Exception as e:
            logger.warning("Map engine refused marker for %s: %s", key, e)
            return False
        if not _usable(handle):
            logger.warning("Map engine returned unusable handle %r for %s; skipping", handle, key)
            return False

        self._arena[key] = _MarkerRecord(handle, appearance, position)
        try:
            self._engine.on_marker_click(handle, lambda: self._clicked(key, handle))
        except Exception as e:
            logger.warning("Could not attach click listener for %s: %s", key, e)
        return True

    def _release(self, key: CompositeKey) -> None:
        record = self._arena.pop(key)
        try:
            self._engine.remove_marker(record.handle)
        except Exception as e:
            logger.warning("Map engine failed to remove marker for %s: %s", key, e)

    def _clicked(self, key: CompositeKey, handle) -> None:
        record = self._arena.get(key)
        if self._torn_down or record is None or record.handle is not handle:
            logger.debug("Ignoring click on stale marker for %s", key)
            return
        if self._on_select is not None:
            self._on_select(key)

    def set_placement(self, lat: float, lng: float) -> bool:
        """Show the placement marker at a point, creating it on first use.

        Returns:
            True if the placement marker is on the map afterwards.
        """
        if self._torn_down:
            return False
        if self._placement is not None:
            try:
                self._engine.move_marker(self._placement, lat, lng)
                return True
            except Exception as e:
                logger.warning("Could not move placement marker: %s", e)
                return False
        try:
            handle = self._engine.add_marker(
                lat, lng, MARKER_COLORS["placement"], PLACEMENT_POPUP, kind="placement"
            )
        except Exception as e:
            logger.warning("Map engine refused placement marker: %s", e)
            return False
        if not _usable(handle):
            logger.warning("Map engine returned unusable placement handle %r", handle)
            return False
        self._placement = handle
        return True

    def clear_placement(self) -> None:
        if self._placement is None:
            return
        handle, self._placement = self._placement, None
        try:
            self._engine.remove_marker(handle)
        except Exception as e:
            logger.warning("Map engine failed to remove placement marker: %s", e)

    def teardown(self) -> int:
        """Remove every marker this reconciler still owns.

        Returns:
            Number of handles released.
        """
        if self._torn_down:
            return 0
        released = len(self._arena) + (1 if self._placement is not None else 0)
        for key in list(self._arena):
            self._release(key)
        self.clear_placement()
        self._torn_down = True
        return released
