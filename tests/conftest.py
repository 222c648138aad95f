"""Shared fixtures for occupancy monitor tests."""

import copy

import pytest
from socketio import exceptions as socketio_exceptions

from occupancy_monitor.client_state import ClientStateStore

SAMPLE_SITES = [
    {
        "siteId": "site-1",
        "name": "Main Mall",
        "city": "Dubai",
        "country": "AE",
        "timezone": "Asia/Dubai",
        "zones": [
            {"zoneId": "z1", "name": "Lobby", "securityLevel": "low"},
            {"zoneId": "z2", "name": "Food Court", "securityLevel": "medium"},
        ],
    },
    {
        "siteId": "site-2",
        "name": "North Campus",
        "zones": [
            {"zoneId": "gate-a", "name": "Gate A"},
        ],
    },
]


class FakeSocketClient:
    """Stands in for socketio.AsyncClient, recording calls and handlers."""

    def __init__(self, fail=False, **kwargs):
        self.kwargs = kwargs
        self.fail = fail
        self.handlers = {}
        self.connected = False
        self.connect_calls = []
        self.disconnect_calls = 0

    def on(self, event, handler):
        self.handlers[event] = handler

    async def connect(self, url, auth=None, transports=None):
        self.connect_calls.append({"url": url, "auth": auth, "transports": transports})
        if self.fail:
            raise socketio_exceptions.ConnectionError("Connection refused")
        self.connected = True
        await self.handlers["connect"]()

    async def disconnect(self):
        self.disconnect_calls += 1
        if self.connected:
            self.connected = False
            await self.handlers["disconnect"]("io client disconnect")

    async def server_disconnect(self, reason="io server disconnect"):
        """Simulate the server (or the network) dropping the socket."""
        self.connected = False
        await self.handlers["disconnect"](reason)

    async def emit(self, event, data):
        """Deliver a server-emitted event to the registered handler."""
        await self.handlers[event](data)


class FakeClientFactory:
    """Builds FakeSocketClients and remembers them."""

    def __init__(self, fail=False):
        self.fail = fail
        self.clients = []

    def __call__(self, **kwargs):
        client = FakeSocketClient(fail=self.fail, **kwargs)
        self.clients.append(client)
        return client

    @property
    def last(self):
        return self.clients[-1]


@pytest.fixture
def sample_sites():
    """Raw /sites payload with two sites and three zones."""
    return copy.deepcopy(SAMPLE_SITES)


@pytest.fixture
def state_store(tmp_path):
    """Client state store backed by a temporary database."""
    return ClientStateStore(str(tmp_path / "client_state.db"))


@pytest.fixture
def socket_factory():
    return FakeClientFactory()


@pytest.fixture
def failing_socket_factory():
    """Factory whose clients refuse every connection."""
    return FakeClientFactory(fail=True)
