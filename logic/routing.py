"""
Route selection between the public explorer and the super-admin surface.

Date: 2026-10-18
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ADMIN_FRAGMENTS = {"#/super-admin", "#super-admin", "#/super-admin/"}


class Route(str, Enum):
    PUBLIC = "public"
    ADMIN = "admin"


def route_for_fragment(fragment: Optional[str]) -> Route:
    """Map a URL fragment to a route.

    Args:
        fragment: Fragment including the leading ``#`` (or None).

    Returns:
        ``Route.ADMIN`` for the super-admin fragment, ``Route.PUBLIC`` otherwise.
    """
    if fragment and fragment.strip().lower() in ADMIN_FRAGMENTS:
        return Route.ADMIN
    return Route.PUBLIC


class RouteSelector:
    """Holds the current route and notifies subscribers when it changes."""

    def __init__(self, fragment: Optional[str] = None):
        self._fragment = fragment or ""
        self._route = route_for_fragment(fragment)
        self._subscribers: List[Callable[[Route, Route], None]] = []

    @property
    def route(self) -> Route:
        return self._route

    @property
    def fragment(self) -> str:
        return self._fragment

    def subscribe(self, callback: Callable[[Route, Route], None]) -> Callable[[], None]:
        """Register a change listener.

        Args:
            callback: Called as ``callback(old_route, new_route)``.

        Returns:
            Function that removes the listener.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_fragment(self, fragment: Optional[str]) -> bool:
        """Apply an external navigation change.

        Returns:
            True if the route changed and subscribers were notified.
        """
        self._fragment = fragment or ""
        new_route = route_for_fragment(fragment)
        if new_route == self._route:
            return False
        old_route, self._route = self._route, new_route
        logger.info("Route changed: %s -> %s", old_route.value, new_route.value)
        for callback in list(self._subscribers):
            callback(old_route, new_route)
        return True
