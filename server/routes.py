"""
Public API routes.

This module contains the navigation endpoints, the map interaction endpoints
shared by both views, and the public explorer endpoints (search, focus,
reload).

Date: 2026-10-18
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from logic.models import Kind
from server.broadcast import notify_view_updated
from server.state import AppState, get_state
from server.views import ExplorerView

router = APIRouter()


class RouteRequest(BaseModel):
    """Request model for an external navigation change."""

    fragment: Optional[str] = ""


class SearchRequest(BaseModel):
    """Request model for the explorer search box."""

    query: Optional[str] = ""


class FocusRequest(BaseModel):
    """Request model for focusing a catalog entry."""

    kind: Kind
    id: int


class PointRequest(BaseModel):
    """Request model for a map click."""

    lat: float
    lng: float


def current_explorer(state: AppState = Depends(get_state)) -> ExplorerView:
    """Resolve the active explorer view.

    Raises:
        HTTPException: If the admin surface is active instead.
    """
    if not isinstance(state.view, ExplorerView):
        raise HTTPException(409, "Public explorer is not active")
    return state.view


async def explorer_payload(view: ExplorerView):
    if not view.loaded and not view.loading:
        await view.load()
    return view.to_dict()


# ============================================================
# Navigation
# ============================================================


@router.get("/api/route")
async def get_route(state: AppState = Depends(get_state)):
    """Get the active route.

    Returns:
        Dictionary with route name and fragment.
    """
    return {"route": state.routes.route.value, "fragment": state.routes.fragment}


@router.post("/api/route")
async def set_route(data: RouteRequest, state: AppState = Depends(get_state)):
    """Apply a URL fragment change reported by the browser.

    Switching routes disposes the previous view; entering the explorer loads
    its catalog.

    Returns:
        Dictionary with the route and whether the view changed.
    """
    changed = state.navigate(data.fragment)
    if changed:
        if isinstance(state.view, ExplorerView):
            await state.view.load()
        await notify_view_updated(state.routes.route.value, state.view.to_dict())
    return {"route": state.routes.route.value, "changed": changed}


# ============================================================
# Map interaction (active view)
# ============================================================


@router.post("/api/map/ready")
async def map_ready(state: AppState = Depends(get_state)):
    """Report that the map container has a layout; creates the map once.

    Returns:
        Dictionary with whether this call created the map.
    """
    return {"created": state.view.ensure_map()}


@router.post("/api/map/resize")
async def map_resize(state: AppState = Depends(get_state)):
    """Report a window or container resize."""
    return {"scheduled": state.view.request_resize()}


@router.post("/api/map/click")
async def map_click(point: PointRequest, state: AppState = Depends(get_state)):
    """Forward a click on the map surface to the active view."""
    engine = state.view.engine
    if engine is None:
        raise HTTPException(409, "Map has not been created")
    return {"listeners": engine.dispatch_click(point.lat, point.lng)}


@router.post("/api/map/markers/{handle_id}/click")
async def marker_click(handle_id: str, state: AppState = Depends(get_state)):
    """Forward a marker click to the active view.

    Raises:
        HTTPException: If the marker is not on the current map.
    """
    engine = state.view.engine
    if engine is None or not engine.dispatch_marker_click(handle_id):
        raise HTTPException(404, f"Marker '{handle_id}' not found")
    return {"success": True}


# ============================================================
# Public explorer
# ============================================================


@router.get("/api/explorer")
async def get_explorer(view: ExplorerView = Depends(current_explorer)):
    """Get the explorer state, loading the catalog on first use."""
    return await explorer_payload(view)


@router.post("/api/explorer/reload")
async def reload_explorer(view: ExplorerView = Depends(current_explorer)):
    """Fetch artisans and places again."""
    await view.load()
    return view.to_dict()


@router.post("/api/explorer/search")
async def search(data: SearchRequest, view: ExplorerView = Depends(current_explorer)):
    """Apply the search query and return the filtered view."""
    view.set_query(data.query)
    payload = await explorer_payload(view)
    await notify_view_updated(view.route.value, payload)
    return payload


@router.post("/api/explorer/focus")
async def focus(data: FocusRequest, view: ExplorerView = Depends(current_explorer)):
    """Focus an entry and fly the camera to it.

    Raises:
        HTTPException: If the entry is not in the filtered view.
    """
    key = (data.kind, data.id)
    if not any(e.key == key for e in view.filtered):
        raise HTTPException(404, f"{data.kind.value} {data.id} is not in the current view")
    moved = view.focus(key)
    return {"focused": {"kind": data.kind.value, "id": data.id}, "changed": moved}
