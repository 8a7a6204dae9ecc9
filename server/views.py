"""
View controllers for the public explorer and the super-admin surface.

Each view owns its map engine, its marker reconciler and all derived state,
and tears all of it down in ``dispose``. Views are single-use: navigation
builds a fresh one. Every state change that follows an ``await`` first checks
that the view is still live, so a late backend answer can not write into a
view that has already been torn down.

Date: 2026-10-18
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from logic.catalog import aggregate, filter_catalog, find_entry
from logic.config import DEFAULT_ZOOM, MAP_CENTER, get_fallback_artisans, get_fallback_places
from logic.errors import GatewayError
from logic.models import CatalogEntry, CompositeKey, FieldError, Kind, Notice, PlaceDraft
from logic.mutations import MutationResult, PlaceMutationPipeline, PlaceStore
from logic.reconciler import MarkerReconciler
from logic.routing import Route
from logic.selection import SelectionState
from logic.session import SessionMachine
from logic.validation import apply_draft_changes, parse_items
from server.map_engine import BroadcastMapEngine

logger = logging.getLogger(__name__)


class BaseView:
    """Map lifecycle shared by both views.

    Args:
        gateway: Remote gateway.
        engine_factory: Callable building a fresh map engine.
    """

    route: Route

    def __init__(self, gateway, engine_factory: Callable[[], Any] = BroadcastMapEngine):
        self._gateway = gateway
        self._engine_factory = engine_factory
        self.engine = None
        self.reconciler: Optional[MarkerReconciler] = None
        self.disposed = False
        self.notice: Optional[Notice] = None
        self._resize_pending = False

    def ensure_map(self) -> bool:
        """Create the map engine once layout is available.

        Returns:
            True if this call created the engine.
        """
        if self.disposed or self.engine is not None:
            return False
        engine = self._engine_factory()
        engine.create(MAP_CENTER, DEFAULT_ZOOM)
        self.engine = engine
        self.reconciler = MarkerReconciler(engine, on_select=self._on_marker_select)
        self._on_map_created()
        self.render()
        return True

    def request_resize(self) -> bool:
        """Schedule a map re-layout; bursts collapse into one call.

        Returns:
            True if a re-layout was scheduled by this call.
        """
        if self.disposed or self.engine is None or self._resize_pending:
            return False
        self._resize_pending = True
        try:
            asyncio.get_running_loop().call_soon(self._flush_resize)
        except RuntimeError:
            self._flush_resize()
        return True

    def _flush_resize(self) -> None:
        self._resize_pending = False
        if not self.disposed and self.engine is not None:
            self.engine.resize()

    def dispose(self) -> None:
        """Tear down markers and the map engine; idempotent."""
        if self.disposed:
            return
        self.disposed = True
        if self.reconciler is not None:
            released = self.reconciler.teardown()
            logger.debug("%s view released %d markers", self.route.value, released)
        if self.engine is not None:
            self.engine.destroy()

    def _on_map_created(self) -> None:
        pass

    def _on_marker_select(self, key: CompositeKey) -> None:
        pass

    def render(self) -> None:
        raise NotImplementedError

    def _map_state(self) -> Dict[str, Any]:
        return {
            "created": self.engine is not None and not self.disposed,
            "markers": len(self.reconciler.keys) if self.reconciler else 0,
        }


class ExplorerView(BaseView):
    """Public explorer: search, sidebar list, markers and camera focus."""

    route = Route.PUBLIC

    def __init__(self, gateway, engine_factory=BroadcastMapEngine):
        super().__init__(gateway, engine_factory)
        self.artisans = []
        self.places = []
        self.catalog: List[CatalogEntry] = []
        self.filtered: List[CatalogEntry] = []
        self.query = ""
        self.selection = SelectionState()
        self.loading = False
        self.loaded = False

    def _settle(self, result, label: str, fallback, failed: List[str]):
        if isinstance(result, GatewayError):
            logger.warning("Loading %s failed, using sample data: %s", label, result)
            failed.append(label)
            return parse_items(fallback())
        if isinstance(result, BaseException):
            raise result
        return result

    async def load(self) -> bool:
        """Fetch artisans and places concurrently and rebuild the view.

        Returns:
            False if the view was disposed before the results arrived.
        """
        if self.disposed:
            return False
        self.loading = True
        results = await asyncio.gather(
            self._gateway.fetch_artisans(),
            self._gateway.fetch_places(),
            return_exceptions=True,
        )
        if self.disposed:
            logger.debug("Explorer disposed during load; discarding results")
            return False

        failed = []
        self.artisans = self._settle(results[0], "artisans", get_fallback_artisans, failed)
        self.places = self._settle(results[1], "places", get_fallback_places, failed)
        self.loading = False
        self.loaded = True
        if failed:
            self.notice = Notice(
                "warning", f"Could not load {' and '.join(failed)} from the server; showing sample data"
            )
        else:
            self.notice = None
        self.refresh()
        return True

    def refresh(self) -> None:
        """Recompute catalog, filtered view, selection and markers."""
        self.catalog = aggregate(self.artisans, self.places)
        self.filtered = filter_catalog(self.catalog, self.query)
        self.selection.sync(self.filtered)
        self.render()

    def render(self) -> None:
        if self.reconciler is not None and not self.disposed:
            self.reconciler.reconcile(self.filtered)

    def set_query(self, query: Optional[str]) -> None:
        self.query = query or ""
        self.refresh()

    def focus(self, key: CompositeKey) -> bool:
        """Focus an entry of the filtered view and fly the camera to it."""
        entry = find_entry(self.filtered, key)
        if entry is None:
            return False
        return self.selection.focus(entry, self.engine)

    def _on_marker_select(self, key: CompositeKey) -> None:
        self.focus(key)

    def to_dict(self) -> Dict[str, Any]:
        focused = self.selection.focused
        return {
            "route": self.route.value,
            "query": self.query,
            "loading": self.loading,
            "total": len(self.catalog),
            "items": [e.to_dict() for e in self.filtered],
            "focused": {"kind": focused[0].value, "id": focused[1]} if focused else None,
            "notice": self.notice.to_dict() if self.notice else None,
            "map": self._map_state(),
        }


class AdminView(BaseView):
    """Super-admin surface: session, place list, draft form and mutations."""

    route = Route.ADMIN

    def __init__(self, gateway, engine_factory=BroadcastMapEngine, journal=None):
        super().__init__(gateway, engine_factory)
        self._journal = journal
        self.session = SessionMachine(gateway)
        self.loading = False
        self._reset_places()

    def _reset_places(self) -> None:
        # One store per session; late results of an old session stay in the old store
        self.store = PlaceStore()
        self.pipeline = PlaceMutationPipeline(self._gateway, self.store, self._journal)
        self.draft = PlaceDraft()
        self.editing_id: Optional[int] = None

    def entries(self) -> List[CatalogEntry]:
        return [CatalogEntry(Kind.PLACE, p) for p in self.store.items]

    # Session

    async def login(self, email: str, password: str) -> bool:
        """Log in and load the place catalog.

        Returns:
            True if the session is authenticated afterwards.
        """
        if self.disposed:
            return False
        store = self.store
        ok = await self.session.login(email, password)
        if self.disposed or self.store is not store:
            logger.debug("Signed out during login; ignoring its result")
            return False
        if not ok:
            self.notice = Notice("error", self.session.error or "Login failed")
            return False
        if self.session.demo:
            self.notice = Notice("warning", "Server unavailable; signed in with the demo account")
        else:
            self.notice = Notice("success", "Signed in")
        await self.load_places()
        return True

    async def load_places(self) -> bool:
        """Load places for the current session.

        A failure keeps the session and installs the sample places.

        Returns:
            False if nothing was loaded or the result was discarded.
        """
        token, store = self.session.token, self.store
        if self.disposed or not token:
            return False
        self.loading = True
        try:
            places = await self._gateway.fetch_places(token)
            error = None
        except GatewayError as e:
            places, error = None, e
        # Demo sessions share one token, so the store identifies the session
        if self.disposed or self.store is not store:
            logger.debug("Session changed during place load; discarding results")
            return False

        self.loading = False
        if error is not None:
            logger.warning("Loading places for admin failed, using sample data: %s", error)
            self.store.replace_all(parse_items(get_fallback_places()))
            self.notice = Notice("warning", "Could not load places from the server; showing sample data")
        else:
            self.store.replace_all(places)
        if self.editing_id is not None and self.store.get(self.editing_id) is None:
            self.cancel_edit()
        self.render()
        return True

    def logout(self) -> None:
        self.session.logout()
        self._reset_places()
        self.loading = False
        self.notice = Notice("info", "Signed out")
        self.render()

    # Draft and placement

    def _on_map_created(self) -> None:
        self.engine.on_click(self._on_map_click)

    def _on_map_click(self, lat: float, lng: float) -> None:
        if self.disposed or not self.session.is_authenticated:
            return
        self.update_draft({"lat": lat, "lng": lng})

    def update_draft(self, changes: Dict[str, Any]) -> List[FieldError]:
        """Apply form changes to the draft and move the placement marker."""
        if not self.session.is_authenticated:
            error = FieldError("session", "Sign in first")
            self.notice = Notice("error", "Sign in first", (error,))
            return [error]
        errors = apply_draft_changes(self.draft, changes)
        if errors:
            self.notice = Notice("error", "Some values could not be used", tuple(errors))
        self._sync_placement()
        return errors

    def _sync_placement(self) -> None:
        if self.reconciler is None or self.disposed:
            return
        if self.draft.has_coordinates():
            self.reconciler.set_placement(self.draft.lat, self.draft.lng)
        else:
            self.reconciler.clear_placement()

    def begin_edit(self, place_id: int) -> bool:
        place = self.store.get(place_id)
        if place is None or not self.session.is_authenticated:
            return False
        self.draft = PlaceDraft.from_item(place)
        self.editing_id = place_id
        self.render()
        return True

    def cancel_edit(self) -> None:
        self.draft = PlaceDraft()
        self.editing_id = None
        self.render()

    # Mutations

    async def submit(self) -> MutationResult:
        """Create a place from the draft, or update the one being edited."""
        pipeline, token = self.pipeline, self.session.token
        draft, editing_id = self.draft, self.editing_id
        submitted = draft.to_dict()
        if editing_id is not None:
            result = await pipeline.update(editing_id, draft, token)
        else:
            result = await pipeline.create(draft, token)
        if self.disposed or pipeline is not self.pipeline:
            return result

        self.notice = result.notice
        # Only clear the form if the operator has not moved on to other input
        unchanged = (
            self.draft is draft and self.editing_id == editing_id and draft.to_dict() == submitted
        )
        if result.applied and unchanged:
            self.draft = PlaceDraft()
            self.editing_id = None
        self.render()
        return result

    def request_delete(self, place_id: int) -> Notice:
        self.notice = self.pipeline.request_delete(place_id)
        return self.notice

    def cancel_delete(self) -> None:
        self.pipeline.cancel_delete()
        self.notice = None

    async def confirm_delete(self) -> MutationResult:
        pipeline, place_id = self.pipeline, self.pipeline.pending_delete
        result = await pipeline.confirm_delete(self.session.token)
        if self.disposed or pipeline is not self.pipeline:
            return result

        self.notice = result.notice
        if result.applied and self.editing_id == place_id:
            self.draft = PlaceDraft()
            self.editing_id = None
        self.render()
        return result

    def render(self) -> None:
        if self.reconciler is None or self.disposed:
            return
        editing_key = (Kind.PLACE, self.editing_id) if self.editing_id is not None else None
        self.reconciler.reconcile(self.entries(), editing_key=editing_key)
        self._sync_placement()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route": self.route.value,
            "session": self.session.to_dict(),
            "loading": self.loading,
            "places": [
                {**p.to_payload(), "editing": p.id == self.editing_id} for p in self.store.items
            ],
            "draft": self.draft.to_dict(),
            "editing_id": self.editing_id,
            "pending_delete": self.pipeline.pending_delete,
            "notice": self.notice.to_dict() if self.notice else None,
            "map": {
                **self._map_state(),
                "placement": self.reconciler is not None and self.reconciler.placement_handle is not None,
            },
        }
