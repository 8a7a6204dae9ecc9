"""
Validation and sanitization utilities.

This module treats every backend payload as untrusted: it checks array-ness
and per-record shape before anything becomes an ``Item``. It also owns the
explicit draft-validation step that turns a ``PlaceDraft`` into either a
submittable payload or a list of field errors.

Date: 2026-10-18
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .models import FieldError, Item, PlaceDraft

logger = logging.getLogger(__name__)

DRAFT_TEXT_FIELDS = ("name", "description", "type", "photo_url")
DRAFT_COORD_FIELDS = ("lat", "lng")
COORD_LIMITS = {"lat": 90.0, "lng": 180.0}
MAX_NAME_LEN = 120


def is_sequence_payload(value: Any) -> bool:
    """Check whether a decoded JSON value can be treated as a record list.

    Args:
        value: Decoded JSON value.

    Returns:
        True for lists and tuples only; strings and mappings are rejected.
    """
    return isinstance(value, (list, tuple))


def parse_item(raw: Any) -> Optional[Item]:
    """Validate a single raw record into an Item.

    Args:
        raw: Decoded JSON value.

    Returns:
        Item, or None if the record is not a well-formed item.
    """
    if not isinstance(raw, dict):
        return None
    try:
        return Item.model_validate(raw)
    except ValidationError as e:
        logger.warning("Dropping malformed record %r: %s", raw.get("id"), e.errors()[0]["msg"])
        return None


def parse_items(raw: Any) -> List[Item]:
    """Validate a raw collection into Items.

    Malformed records are dropped individually; a non-sequence payload yields
    an empty list.

    Args:
        raw: Decoded JSON value.

    Returns:
        List of valid Items in payload order.
    """
    if not is_sequence_payload(raw):
        return []
    items = []
    for record in raw:
        item = parse_item(record)
        if item is not None:
            items.append(item)
    return items


def sanitise_text(value: Any) -> str:
    """Coerce a form value to a stripped string."""
    if value is None:
        return ""
    return str(value).strip()


def parse_coordinate(value: Any, axis: str) -> Tuple[Optional[float], Optional[FieldError]]:
    """Parse a coordinate coming from a free-text form field or a map click.

    Args:
        value: Raw value (number, numeric string, empty string or None).
        axis: ``lat`` or ``lng``.

    Returns:
        Tuple of (coordinate or None, error or None). An empty value clears
        the coordinate without error.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, None
    if isinstance(value, bool):
        return None, FieldError(axis, "Coordinate must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None, FieldError(axis, "Coordinate must be a number")
    if not math.isfinite(number):
        return None, FieldError(axis, "Coordinate must be a finite number")
    if abs(number) > COORD_LIMITS[axis]:
        return None, FieldError(axis, f"Coordinate out of range (±{COORD_LIMITS[axis]:g})")
    return number, None


def apply_draft_changes(draft: PlaceDraft, changes: Dict[str, Any]) -> List[FieldError]:
    """Apply form field changes to a draft.

    Fields that fail to parse keep their previous value so the operator can
    correct the input.

    Args:
        draft: Draft to update in place.
        changes: Mapping of field name to raw value.

    Returns:
        List of field errors; empty if every change was applied.
    """
    errors = []
    for key, value in changes.items():
        if key in DRAFT_TEXT_FIELDS:
            setattr(draft, key, sanitise_text(value))
        elif key in DRAFT_COORD_FIELDS:
            number, error = parse_coordinate(value, key)
            if error:
                errors.append(error)
            else:
                setattr(draft, key, number)
        else:
            errors.append(FieldError(key, "Unknown field"))
    return errors


@dataclass
class DraftValidation:
    """Outcome of validating a draft.

    Exactly one of ``payload`` and ``errors`` is meaningful: a payload is only
    produced when there are no errors.
    """

    payload: Optional[Dict[str, Any]] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.payload is not None and not self.errors


def validate_draft(draft: PlaceDraft) -> DraftValidation:
    """Validate a draft before it may be submitted as a mutation.

    Args:
        draft: Draft to check.

    Returns:
        DraftValidation with the wire payload (without id) or field errors.
    """
    errors = []
    name = draft.name.strip()
    if not name:
        errors.append(FieldError("name", "Name is required"))
    elif len(name) > MAX_NAME_LEN:
        errors.append(FieldError("name", "Name is too long"))

    for axis in DRAFT_COORD_FIELDS:
        value = getattr(draft, axis)
        if value is None:
            errors.append(FieldError(axis, "Pick a point on the map or enter a coordinate"))
            continue
        _, error = parse_coordinate(value, axis)
        if error:
            errors.append(error)

    if errors:
        return DraftValidation(errors=errors)

    payload = {
        "name": name,
        "description": draft.description.strip() or None,
        "type": draft.type.strip() or None,
        "photo_url": draft.photo_url.strip() or None,
        "lat": float(draft.lat),
        "lng": float(draft.lng),
    }
    return DraftValidation(payload={k: v for k, v in payload.items() if v is not None})
