"""Shared pytest fixtures

- hub / strict_hub: fresh in-memory relay per test
- connect: attaches fake clients to a hub without any socket
- client: FastAPI TestClient against a fresh app
"""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from connection_manager import CLOSE
from main import create_app
from signaling import SignalingHub


class FakeClient:
    """A transport connection driven directly, reading its outbound queue"""

    def __init__(self, hub: SignalingHub, handle: str):
        self.hub = hub
        self.handle = handle
        self.connection = hub.connections.attach(handle)
        self.inbox = []

    def emit(self, event: str, data: dict) -> bool:
        return self.hub.router.dispatch(self.handle, event, data)

    def join(self, room_id: str, email: str, name: str) -> bool:
        return self.emit("join-room", {"roomId": room_id, "emailId": email, "name": name})

    def disconnect(self):
        self.hub.router.disconnect(self.handle)
        self.hub.connections.detach(self.handle)

    def received(self) -> list:
        while not self.connection.outbox.empty():
            self.inbox.append(self.connection.outbox.get_nowait())
        return list(self.inbox)

    def events(self, name: str) -> list:
        return [m["data"] for m in self.received() if m is not CLOSE and m["event"] == name]

    def names(self) -> list:
        return [m["event"] for m in self.received() if m is not CLOSE]

    @property
    def closed(self) -> bool:
        return CLOSE in self.received()

    def clear(self):
        self.received()
        self.inbox.clear()


@pytest.fixture
def hub() -> SignalingHub:
    return SignalingHub()


@pytest.fixture
def strict_hub() -> SignalingHub:
    return SignalingHub(strict=True)


@pytest.fixture
def connect(hub):
    """Factory: connect("alice") -> FakeClient on the default hub"""

    def _connect(handle: str, on: Optional[SignalingHub] = None) -> FakeClient:
        return FakeClient(on or hub, handle)

    return _connect


@pytest.fixture
def test_settings() -> Settings:
    return Settings(environment="test", allowed_origins=["http://localhost:5173"])


@pytest.fixture
def client(test_settings):
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client
