"""
Domain value types.

Items arrive from the REST backend as loosely-shaped JSON; they are validated
into ``Item`` before anything else touches them. ``CatalogEntry`` is the unit
the aggregator, filter, selection and reconciler work with, and ``PlaceDraft``
is the admin form's staging record.

Date: 2026-10-18
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator


class Kind(str, Enum):
    """Catalog item kind."""

    ARTISAN = "artisan"
    PLACE = "place"

    @property
    def label(self) -> str:
        return KIND_LABELS[self]


KIND_LABELS = {Kind.ARTISAN: "Artesano", Kind.PLACE: "Lugar"}

CompositeKey = Tuple[Kind, int]


class Item(BaseModel):
    """An artisan or place as served by the backend."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    photo_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value

    def has_position(self) -> bool:
        """Check whether both coordinates are finite numbers."""
        return (
            self.lat is not None
            and self.lng is not None
            and math.isfinite(self.lat)
            and math.isfinite(self.lng)
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class CatalogEntry:
    """An Item tagged with its Kind."""

    kind: Kind
    item: Item

    @property
    def key(self) -> CompositeKey:
        return (self.kind, self.item.id)

    @property
    def subtitle(self) -> str:
        """Category for artisans, type for places."""
        return self.item.category or self.item.type or ""

    def to_dict(self) -> Dict[str, Any]:
        data = self.item.to_payload()
        data["kind"] = self.kind.value
        data["kind_label"] = self.kind.label
        return data


@dataclass
class PlaceDraft:
    """Staging record for the create/edit form.

    Text fields may be empty and coordinates stay ``None`` until the operator
    picks a point on the map or types them in.
    """

    name: str = ""
    description: str = ""
    type: str = ""
    photo_url: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_item(cls, item: Item) -> "PlaceDraft":
        return cls(
            name=item.name,
            description=item.description or "",
            type=item.type or "",
            photo_url=item.photo_url or "",
            lat=item.lat,
            lng=item.lng,
        )

    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "photo_url": self.photo_url,
            "lat": self.lat,
            "lng": self.lng,
        }


@dataclass(frozen=True)
class FieldError:
    """A single draft validation failure."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class Notice:
    """User-visible status message.

    Attributes:
        level: One of ``info``, ``success``, ``warning`` or ``error``.
        text: Message text.
        errors: Field errors attached to a validation failure.
    """

    level: str
    text: str
    errors: Tuple[FieldError, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "text": self.text,
            "errors": [e.to_dict() for e in self.errors],
        }
