"""Shared application state (injected into routes)."""

import logging
from typing import Callable, Optional, Union

from audit_service import MutationJournal
from logic.routing import Route, RouteSelector
from server.gateway import RemoteGateway
from server.map_engine import BroadcastMapEngine
from server.views import AdminView, ExplorerView

logger = logging.getLogger(__name__)


class AppState:
    """Route selector plus the one view it currently selects.

    Args:
        gateway: Remote gateway shared by all views.
        engine_factory: Builds a map engine for each new view.
        journal: Mutation journal handed to admin views.
        fragment: Initial URL fragment.
    """

    def __init__(
        self,
        gateway=None,
        engine_factory: Callable = BroadcastMapEngine,
        journal=None,
        fragment: Optional[str] = None,
    ) -> None:
        self.gateway = gateway or RemoteGateway()
        self._engine_factory = engine_factory
        self._journal = journal
        self.routes = RouteSelector(fragment)
        self.view: Union[ExplorerView, AdminView] = self._build_view(self.routes.route)
        self._unsubscribe = self.routes.subscribe(self._on_route_change)

    def _build_view(self, route: Route):
        if route == Route.ADMIN:
            return AdminView(self.gateway, self._engine_factory, journal=self._journal)
        return ExplorerView(self.gateway, self._engine_factory)

    def _on_route_change(self, old: Route, new: Route) -> None:
        logger.info("Tearing down %s view, starting %s view", old.value, new.value)
        self.view.dispose()
        self.view = self._build_view(new)

    def navigate(self, fragment: Optional[str]) -> bool:
        """Apply an external navigation signal.

        Returns:
            True if the active view was replaced.
        """
        return self.routes.set_fragment(fragment)

    def close(self) -> None:
        self._unsubscribe()
        self.view.dispose()


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState(journal=MutationJournal)
    return _state


def set_state(state: Optional[AppState]) -> None:
    global _state
    if _state is not None and _state is not state:
        _state.close()
    _state = state
