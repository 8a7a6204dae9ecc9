"""
Selection state for the public explorer.

The focused key must always belong to the current filtered view, so
``sync`` runs after every catalog or query change, not only after clicks.

Date: 2026-10-18
"""

import logging
from typing import Optional, Sequence

from .config import FOCUS_ZOOM
from .models import CatalogEntry, CompositeKey

logger = logging.getLogger(__name__)


class SelectionState:
    """Two-state machine: nothing focused, or ``focused(key)``."""

    def __init__(self) -> None:
        self._focused: Optional[CompositeKey] = None
        self._visible = set()

    @property
    def focused(self) -> Optional[CompositeKey]:
        return self._focused

    def sync(self, filtered: Sequence[CatalogEntry]) -> bool:
        """Record the current filtered view and drop a focus that left it.

        Args:
            filtered: Current filtered view.

        Returns:
            True if the focus was cleared by this call.
        """
        self._visible = {e.key for e in filtered}
        if self._focused is not None and self._focused not in self._visible:
            logger.debug("Focused %s left the view; clearing selection", self._focused)
            self._focused = None
            return True
        return False

    def focus(self, entry: CatalogEntry, engine=None, zoom: int = FOCUS_ZOOM) -> bool:
        """Focus an entry and move the camera to it.

        The camera moves once per transition: focusing the already focused
        key changes nothing.

        Args:
            entry: Entry to focus; must be part of the last synced view.
            engine: Map engine to fly, if one is attached.
            zoom: Target zoom level.

        Returns:
            True if a transition to ``focused(entry.key)`` happened.
        """
        if entry.key not in self._visible:
            return False
        if entry.key == self._focused:
            return False
        self._focused = entry.key
        if engine is not None and entry.item.has_position():
            engine.fly_to(entry.item.lat, entry.item.lng, zoom)
        return True

    def clear(self) -> None:
        self._focused = None
