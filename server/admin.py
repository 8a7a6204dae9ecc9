"""
Admin routes for place management.

This module provides the super-admin endpoints: login/logout, the place
draft form, edit selection, create/update submission, the confirm-to-delete
flow, and the mutation journal.

Date: 2026-10-18
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from audit_service import MutationJournal
from server.broadcast import notify_view_updated
from server.state import AppState, get_state
from server.views import AdminView

router = APIRouter()


class LoginRequest(BaseModel):
    """Request model for operator login."""

    email: str
    password: str


def current_admin(state: AppState = Depends(get_state)) -> AdminView:
    """Resolve the active admin view.

    Raises:
        HTTPException: If the public explorer is active instead.
    """
    if not isinstance(state.view, AdminView):
        raise HTTPException(409, "Super-admin surface is not active")
    return state.view


def authenticated_admin(view: AdminView = Depends(current_admin)) -> AdminView:
    """Resolve the admin view and require a session.

    Raises:
        HTTPException: If no operator is logged in.
    """
    if not view.session.is_authenticated:
        raise HTTPException(401, "Login required")
    return view


def mutation_response(view: AdminView, result) -> Dict[str, Any]:
    return {
        "applied": result.applied,
        "synced": result.synced,
        "outcome": result.outcome,
        "item": result.item.to_payload() if result.item else None,
        "state": view.to_dict(),
    }


@router.post("/api/admin/login")
async def login(data: LoginRequest, view: AdminView = Depends(current_admin)):
    """Log in and load the place catalog.

    Raises:
        HTTPException: 401 with the login error if authentication failed.
    """
    if not await view.login(data.email, data.password):
        raise HTTPException(401, view.session.error or "Login failed")
    return view.to_dict()


@router.post("/api/admin/logout")
async def logout(view: AdminView = Depends(current_admin)):
    """Log out and clear places, draft and editing state."""
    view.logout()
    return view.to_dict()


@router.get("/api/admin/state")
async def get_admin_state(view: AdminView = Depends(current_admin)):
    """Get the admin surface state."""
    return view.to_dict()


@router.post("/api/admin/places/reload")
async def reload_places(view: AdminView = Depends(authenticated_admin)):
    """Fetch places again for the current session."""
    await view.load_places()
    return view.to_dict()


@router.post("/api/admin/draft")
async def update_draft(payload: Dict[str, Any] = Body(...), view: AdminView = Depends(authenticated_admin)):
    """Update draft fields.

    Invalid values are reported and leave the previous value in place.

    Args:
        payload: Field names (name, description, type, photo_url, lat, lng)
            mapped to raw form values.
    """
    errors = view.update_draft(payload)
    return {"errors": [e.to_dict() for e in errors], "state": view.to_dict()}


@router.post("/api/admin/edit/cancel")
async def cancel_edit(view: AdminView = Depends(authenticated_admin)):
    """Discard the draft and leave edit mode."""
    view.cancel_edit()
    return view.to_dict()


@router.post("/api/admin/edit/{place_id}")
async def begin_edit(place_id: int, view: AdminView = Depends(authenticated_admin)):
    """Load a place into the draft for editing.

    Raises:
        HTTPException: If the place is unknown.
    """
    if not view.begin_edit(place_id):
        raise HTTPException(404, f"Place '{place_id}' not found")
    return view.to_dict()


@router.post("/api/admin/submit")
async def submit(view: AdminView = Depends(authenticated_admin)):
    """Create a place from the draft, or update the place being edited.

    Validation failures answer 422 and keep the draft.
    """
    result = await view.submit()
    if result.errors:
        raise HTTPException(422, {"message": result.notice.text, "errors": [e.to_dict() for e in result.errors]})
    await notify_view_updated(view.route.value, view.to_dict())
    return mutation_response(view, result)


@router.post("/api/admin/places/{place_id}/delete")
async def request_delete(place_id: int, view: AdminView = Depends(authenticated_admin)):
    """Stage a deletion; nothing is deleted until it is confirmed.

    Raises:
        HTTPException: If the place is unknown.
    """
    notice = view.request_delete(place_id)
    if view.pipeline.pending_delete is None:
        raise HTTPException(404, notice.text)
    return {"pending_delete": place_id, "message": notice.text}


@router.post("/api/admin/delete/confirm")
async def confirm_delete(view: AdminView = Depends(authenticated_admin)):
    """Run the staged deletion.

    Raises:
        HTTPException: If no deletion was staged.
    """
    if view.pipeline.pending_delete is None:
        raise HTTPException(400, "No deletion to confirm")
    result = await view.confirm_delete()
    await notify_view_updated(view.route.value, view.to_dict())
    return mutation_response(view, result)


@router.post("/api/admin/delete/cancel")
async def cancel_delete(view: AdminView = Depends(authenticated_admin)):
    """Drop the staged deletion."""
    view.cancel_delete()
    return view.to_dict()


@router.get("/api/admin/journal")
def get_journal(
    outcome: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    fmt: str = "json",
    view: AdminView = Depends(authenticated_admin),
):
    """List journalled mutations, newest first.

    Args:
        outcome: Optional filter (synced / degraded).
        limit: Maximum number of entries.
        offset: Number of entries to skip.
        fmt: ``json`` or ``csv``.
    """
    if fmt == "csv":
        return PlainTextResponse(MutationJournal.export_logs_csv(outcome=outcome), media_type="text/csv")
    return {"entries": MutationJournal.get_logs(outcome=outcome, limit=limit, offset=offset)}
