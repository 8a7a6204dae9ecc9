"""
Shared test doubles: an in-memory REST gateway and sample catalog data.
"""

import asyncio

import pytest

from logic.errors import GatewayError, GatewayRejected
from logic.models import Item


def make_item(item_id, name, **fields):
    fields.setdefault("lat", 20.06)
    fields.setdefault("lng", -99.34)
    return Item(id=item_id, name=name, **fields)


def sample_artisans():
    return [
        make_item(1, "Taller Xóchitl", description="Barro bruñido", category="Alfarería", lat=20.0589, lng=-99.3421),
        make_item(2, "Textiles Doña Rosa", description="Bordado tenango", category="Textil", lat=20.0601, lng=-99.3350),
    ]


def sample_places():
    return [
        make_item(1, "Zona Arqueológica de Tula", description="Los Atlantes", type="Arqueología", lat=20.0645, lng=-99.3408),
        make_item(7, "Catedral de San José", description="Templo franciscano", type="Templo", lat=20.0540, lng=-99.3412),
    ]


class FakeGateway:
    """In-memory stand-in for ``server.gateway.RemoteGateway``.

    ``offline`` makes every call fail like a network error; ``failing`` fails
    only the named calls. ``hold(name)`` pauses the next call of that name
    until the returned event is set.
    """

    def __init__(self, artisans=None, places=None, offline=False, token="server-token", reject_login=False):
        self.artisans = sample_artisans() if artisans is None else artisans
        self.places = sample_places() if places is None else places
        self.offline = offline
        self.failing = set()
        self.token = token
        self.reject_login = reject_login
        self.next_id = 100
        self.calls = []
        self._gates = {}

    def hold(self, name):
        gate = asyncio.Event()
        self._gates[name] = gate
        return gate

    def count(self, name):
        return sum(1 for call, _ in self.calls if call == name)

    async def _call(self, name, *args):
        self.calls.append((name, args))
        gate = self._gates.pop(name, None)
        if gate is not None:
            await gate.wait()
        if self.offline or name in self.failing:
            raise GatewayError(f"{name} failed: connection refused")

    async def fetch_artisans(self):
        await self._call("fetch_artisans")
        return list(self.artisans)

    async def fetch_places(self, token=None):
        await self._call("fetch_places", token)
        return list(self.places)

    async def create_place(self, payload, token):
        await self._call("create_place", payload, token)
        item = Item(id=self.next_id, **payload)
        self.next_id += 1
        return item

    async def update_place(self, place_id, payload, token):
        await self._call("update_place", place_id, payload, token)
        return Item(id=place_id, **payload)

    async def delete_place(self, place_id, token):
        await self._call("delete_place", place_id, token)

    async def login(self, email, password):
        await self._call("login", email)
        if self.reject_login:
            raise GatewayRejected("login rejected", 401)
        return self.token


class ListJournal:
    """Journal double collecting records in memory."""

    def __init__(self):
        self.entries = []

    def record(self, **entry):
        self.entries.append(entry)
        return len(self.entries)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def offline_gateway():
    return FakeGateway(offline=True)
