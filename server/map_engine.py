"""
Map Engine capability.

``MapEngine`` is the surface the reconciler and selection logic drive. The
production implementation, ``BroadcastMapEngine``, keeps the authoritative
marker registry on the server and streams every command to the browser pages
subscribed over SSE, which apply them to their MapLibre instance. User
interaction travels back through the map endpoints and is dispatched to the
callbacks registered here.

Date: 2026-10-18
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from server import broadcast

logger = logging.getLogger(__name__)

ClickCallback = Callable[[float, float], None]
MarkerCallback = Callable[[], None]


class MapEngineError(Exception):
    """Raised when the engine refuses an operation."""


@dataclass(frozen=True)
class MarkerHandle:
    """Opaque reference to one marker on the map surface."""

    id: str


class MapEngine(ABC):
    """Operations a map surface must offer."""

    @abstractmethod
    def create(self, center: Dict[str, float], zoom: float) -> None: ...

    @abstractmethod
    def destroy(self) -> None: ...

    @abstractmethod
    def add_marker(
        self, lat: float, lng: float, color: str, popup_html: Optional[str] = None, kind: str = ""
    ) -> Optional[MarkerHandle]: ...

    @abstractmethod
    def remove_marker(self, handle: MarkerHandle) -> None: ...

    @abstractmethod
    def move_marker(self, handle: MarkerHandle, lat: float, lng: float) -> None: ...

    @abstractmethod
    def on_click(self, callback: ClickCallback) -> None: ...

    @abstractmethod
    def on_marker_click(self, handle: MarkerHandle, callback: MarkerCallback) -> None: ...

    @abstractmethod
    def fly_to(self, lat: float, lng: float, zoom: float) -> None: ...

    @abstractmethod
    def resize(self) -> None: ...


class BroadcastMapEngine(MapEngine):
    """Map engine that mirrors its state to SSE subscribers.

    Attributes:
        created: Whether ``create`` has run and ``destroy`` has not.
        camera: Last commanded camera position.
    """

    def __init__(self, publish: Optional[Callable[[Dict[str, Any]], Any]] = None):
        self._publish = publish or broadcast.publish
        self._markers: Dict[str, Dict[str, Any]] = {}
        self._marker_callbacks: Dict[str, MarkerCallback] = {}
        self._click_callbacks: List[ClickCallback] = []
        self.created = False
        self.destroyed = False
        self.camera: Dict[str, float] = {}

    def _emit(self, event_type: str, **data) -> None:
        self._publish({"type": event_type, **data})

    def _require_live(self) -> None:
        if not self.created:
            raise MapEngineError("map has not been created")

    def _require_marker(self, handle: MarkerHandle) -> Dict[str, Any]:
        self._require_live()
        marker = self._markers.get(getattr(handle, "id", None))
        if marker is None:
            raise MapEngineError(f"unknown marker {handle!r}")
        return marker

    def create(self, center: Dict[str, float], zoom: float) -> None:
        if self.created:
            raise MapEngineError("map already created")
        if self.destroyed:
            raise MapEngineError("map was destroyed")
        self.created = True
        self.camera = {"lat": center["lat"], "lng": center["lng"], "zoom": zoom}
        self._emit("map_create", camera=self.camera)

    def destroy(self) -> None:
        if not self.created:
            return
        if self._markers:
            logger.warning("Destroying map with %d markers still attached", len(self._markers))
        self._markers.clear()
        self._marker_callbacks.clear()
        self._click_callbacks.clear()
        self.created = False
        self.destroyed = True
        self._emit("map_destroy")

    def add_marker(self, lat, lng, color, popup_html=None, kind=""):
        self._require_live()
        handle = MarkerHandle(uuid.uuid4().hex[:12])
        marker = {
            "id": handle.id,
            "lat": lat,
            "lng": lng,
            "color": color,
            "popup": popup_html,
            "kind": kind,
        }
        self._markers[handle.id] = marker
        self._emit("marker_add", marker=marker)
        return handle

    def remove_marker(self, handle: MarkerHandle) -> None:
        self._require_marker(handle)
        del self._markers[handle.id]
        self._marker_callbacks.pop(handle.id, None)
        self._emit("marker_remove", id=handle.id)

    def move_marker(self, handle: MarkerHandle, lat: float, lng: float) -> None:
        marker = self._require_marker(handle)
        marker["lat"], marker["lng"] = lat, lng
        self._emit("marker_move", id=handle.id, lat=lat, lng=lng)

    def on_click(self, callback: ClickCallback) -> None:
        self._require_live()
        self._click_callbacks.append(callback)

    def on_marker_click(self, handle: MarkerHandle, callback: MarkerCallback) -> None:
        self._require_marker(handle)
        self._marker_callbacks[handle.id] = callback

    def fly_to(self, lat: float, lng: float, zoom: float) -> None:
        self._require_live()
        self.camera = {"lat": lat, "lng": lng, "zoom": zoom}
        self._emit("fly_to", camera=self.camera)

    def resize(self) -> None:
        if self.created:
            self._emit("resize")

    # Inbound interaction from the browser

    def dispatch_click(self, lat: float, lng: float) -> int:
        """Deliver a map click to registered listeners.

        Returns:
            Number of listeners called.
        """
        if not self.created:
            return 0
        callbacks = list(self._click_callbacks)
        for callback in callbacks:
            callback(lat, lng)
        return len(callbacks)

    def dispatch_marker_click(self, handle_id: str) -> bool:
        """Deliver a marker click to its listener.

        Returns:
            True if a live marker with a listener received the click.
        """
        callback = self._marker_callbacks.get(handle_id)
        if callback is None or handle_id not in self._markers:
            return False
        callback()
        return True

    # Introspection

    @property
    def marker_count(self) -> int:
        return len(self._markers)

    def markers(self) -> List[Dict[str, Any]]:
        return [dict(m) for m in self._markers.values()]

    def has_marker(self, handle: MarkerHandle) -> bool:
        return getattr(handle, "id", None) in self._markers

    def snapshot(self) -> Dict[str, Any]:
        """Full engine state, sent to a subscriber when it connects."""
        return {
            "type": "map_snapshot",
            "created": self.created,
            "camera": self.camera,
            "markers": self.markers(),
        }
