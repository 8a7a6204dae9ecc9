"""
Optimistic place mutations.

Every mutation follows the same protocol: validate locally, call the backend,
merge what it returns, and if the backend fails apply the change locally
anyway with a degraded-mode warning. Nothing is rolled back; the next
successful load from the backend is what reconciles the two.

Concurrent mutations of the same place are resolved by issue order: each
call takes a ticket from a per-id revision counter before awaiting the
backend, and its result is merged only if no newer mutation for that id has
been issued in the meantime. Deleted ids are tombstoned so a late update can
not bring them back.

Date: 2026-10-18
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .errors import GatewayError
from .models import FieldError, Item, Notice, PlaceDraft
from .validation import validate_draft

logger = logging.getLogger(__name__)

SYNCED = "synced"
DEGRADED = "degraded"


class PlaceStore:
    """Local place catalog shared by the admin view and the pipeline."""

    def __init__(self, items: Iterable[Item] = ()):
        self._items: List[Item] = list(items)
        self._tickets: Dict[int, int] = {}
        self._tombstones: Set[int] = set()
        self._next_placeholder = -1
        self.revision = 0

    @property
    def items(self) -> List[Item]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, place_id: int) -> Optional[Item]:
        return next((p for p in self._items if p.id == place_id), None)

    def replace_all(self, items: Iterable[Item]) -> None:
        """Install a fresh dataset from the backend (or the fallback)."""
        self._items = list(items)
        self._tombstones.clear()
        self.revision += 1

    def clear(self) -> None:
        self.replace_all([])

    def issue(self, place_id: int) -> int:
        """Take a write ticket for ``place_id``."""
        ticket = self._tickets.get(place_id, 0) + 1
        self._tickets[place_id] = ticket
        return ticket

    def is_current(self, place_id: int, ticket: int) -> bool:
        return self._tickets.get(place_id) == ticket

    def next_placeholder_id(self) -> int:
        """Local id for a place the backend never acknowledged.

        Negative, so it can not collide with backend-assigned ids.
        """
        while self.get(self._next_placeholder) is not None:
            self._next_placeholder -= 1
        place_id = self._next_placeholder
        self._next_placeholder -= 1
        return place_id

    def upsert(self, item: Item) -> bool:
        """Replace the place with the same id, or append it.

        Returns:
            False if the id was deleted locally and the write was dropped.
        """
        if item.id in self._tombstones:
            return False
        for index, existing in enumerate(self._items):
            if existing.id == item.id:
                self._items[index] = item
                break
        else:
            self._items.append(item)
        self.revision += 1
        return True

    def remove(self, place_id: int) -> bool:
        before = len(self._items)
        self._items = [p for p in self._items if p.id != place_id]
        self._tombstones.add(place_id)
        self.revision += 1
        return len(self._items) != before


@dataclass
class MutationResult:
    """Outcome of one pipeline call.

    Attributes:
        action: ``create``, ``update`` or ``delete``.
        applied: Whether local state changed.
        synced: Whether the backend confirmed the change.
        notice: Message for the operator.
        item: The place as stored locally after the call, if any.
        errors: Validation errors that stopped the call.
    """

    action: str
    applied: bool
    synced: bool
    notice: Notice
    item: Optional[Item] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if not self.applied:
            return "rejected"
        return SYNCED if self.synced else DEGRADED


class PlaceMutationPipeline:
    """Create, update and delete places against the gateway.

    Args:
        gateway: Remote gateway.
        store: Local place catalog to mutate.
        journal: Optional mutation journal with a ``record`` method.
        user: Operator name written to the journal.
    """

    def __init__(self, gateway, store: PlaceStore, journal=None, user: str = "super-admin"):
        self._gateway = gateway
        self._store = store
        self._journal = journal
        self.user = user
        self.pending_delete: Optional[int] = None

    # Local rejection

    def _rejected(self, action: str, text: str, errors: Optional[List[FieldError]] = None) -> MutationResult:
        errors = errors or []
        return MutationResult(
            action=action,
            applied=False,
            synced=False,
            notice=Notice("error", text, tuple(errors)),
            errors=errors,
        )

    def _precheck(self, action: str, token: Optional[str], draft: Optional[PlaceDraft] = None):
        if not token:
            return self._rejected(action, "You must be logged in to change places"), None
        if draft is None:
            return None, None
        validation = validate_draft(draft)
        if not validation.ok:
            return self._rejected(action, "Please fix the highlighted fields", validation.errors), None
        return None, validation.payload

    def _record(self, result: MutationResult, place_id: int, before: Optional[Item]) -> MutationResult:
        if self._journal is None or not result.applied:
            return result
        try:
            self._journal.record(
                user=self.user,
                entity_id=place_id,
                action=result.action,
                outcome=result.outcome,
                before_value=before.to_payload() if before else None,
                after_value=result.item.to_payload() if result.item else None,
                description=result.notice.text,
            )
        except Exception as e:
            logger.error("Could not journal %s of place %s: %s", result.action, place_id, e)
        return result

    # Operations

    async def create(self, draft: PlaceDraft, token: Optional[str]) -> MutationResult:
        """Create a place from a draft.

        Args:
            draft: Draft to submit; left untouched.
            token: Session token.

        Returns:
            MutationResult.
        """
        rejected, payload = self._precheck("create", token, draft)
        if rejected:
            return rejected

        try:
            saved = await self._gateway.create_place(payload, token)
        except GatewayError as e:
            item = Item(id=self._store.next_placeholder_id(), **payload)
            self._store.upsert(item)
            logger.warning("Create of %r applied locally only (id %s): %s", item.name, item.id, e)
            return self._record(
                MutationResult(
                    "create",
                    True,
                    False,
                    Notice("warning", f'Server unavailable: "{item.name}" was saved on this device only'),
                    item,
                ),
                item.id,
                None,
            )

        if saved is None:
            # Backend accepted but echoed nothing usable; keep the values we sent
            saved = Item(id=self._store.next_placeholder_id(), **payload)
            logger.warning("Create response carried no place; using local id %s", saved.id)
        self._store.upsert(saved)
        return self._record(
            MutationResult("create", True, True, Notice("success", f'Place "{saved.name}" created'), saved),
            saved.id,
            None,
        )

    async def update(self, place_id: int, draft: PlaceDraft, token: Optional[str]) -> MutationResult:
        """Replace a place with the draft's values.

        Returns:
            MutationResult.
        """
        rejected, payload = self._precheck("update", token, draft)
        if rejected:
            return rejected
        before = self._store.get(place_id)
        if before is None:
            return self._rejected("update", f"Place {place_id} no longer exists")

        ticket = self._store.issue(place_id)
        synced = True
        try:
            saved = await self._gateway.update_place(place_id, payload, token)
        except GatewayError as e:
            logger.warning("Update of place %s applied locally only: %s", place_id, e)
            saved, synced = None, False

        item = saved if saved is not None and saved.id == place_id else Item(id=place_id, **payload)
        if not self._store.is_current(place_id, ticket):
            logger.info("Update of place %s superseded by a newer change; result dropped", place_id)
            return MutationResult(
                "update", False, synced, Notice("info", f'A newer change to "{item.name}" is pending')
            )
        if not self._store.upsert(item):
            return MutationResult(
                "update", False, synced, Notice("info", f'"{item.name}" was deleted meanwhile')
            )

        if synced:
            notice = Notice("success", f'Place "{item.name}" updated')
        else:
            notice = Notice("warning", f'Server unavailable: changes to "{item.name}" were kept on this device only')
        return self._record(MutationResult("update", True, synced, notice, item), place_id, before)

    async def delete(self, place_id: int, token: Optional[str]) -> MutationResult:
        """Delete a place. Callers go through ``confirm_delete``.

        Returns:
            MutationResult.
        """
        rejected, _ = self._precheck("delete", token)
        if rejected:
            return rejected
        before = self._store.get(place_id)
        if before is None:
            return self._rejected("delete", f"Place {place_id} no longer exists")

        ticket = self._store.issue(place_id)
        synced = True
        try:
            await self._gateway.delete_place(place_id, token)
        except GatewayError as e:
            logger.warning("Delete of place %s applied locally only: %s", place_id, e)
            synced = False

        if not self._store.is_current(place_id, ticket):
            logger.info("Delete of place %s superseded by a newer change", place_id)
            return MutationResult("delete", False, synced, Notice("info", "A newer change to this place is pending"))
        self._store.remove(place_id)

        if synced:
            notice = Notice("success", f'Place "{before.name}" deleted')
        else:
            notice = Notice("warning", f'Server unavailable: "{before.name}" was removed on this device only')
        return self._record(MutationResult("delete", True, synced, notice, None), place_id, before)

    # Destructive-action guard

    def request_delete(self, place_id: int) -> Notice:
        """Stage a deletion that must be confirmed before it runs."""
        place = self._store.get(place_id)
        if place is None:
            self.pending_delete = None
            return Notice("error", f"Place {place_id} no longer exists")
        self.pending_delete = place_id
        return Notice("info", f'Delete "{place.name}"? Confirm to continue')

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_delete(self, token: Optional[str]) -> MutationResult:
        if self.pending_delete is None:
            return self._rejected("delete", "Nothing to delete")
        place_id, self.pending_delete = self.pending_delete, None
        return await self.delete(place_id, token)
