"""
Pytest configuration file for the wabridge test suite.

This file contains fixtures that are shared across multiple test files: a
scriptable fake session client, observer channels that record or fail, and
freshly wired store/hub/adapter instances.
"""

import os

# Keep test runs from writing log files; set before wabridge is imported.
os.environ.setdefault("LOG_FILE_OUTPUT", "false")
os.environ.setdefault("LOG_CONSOLE_OUTPUT", "false")

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from wabridge.client.base_client import Contact, RawMessage, SentMessage, SessionClient
from wabridge.config.env_loader import load_env_file
from wabridge.handlers.broadcast_hub import BroadcastHub
from wabridge.handlers.error_handler import ErrorHandler
from wabridge.handlers.session_store import SessionStateStore
from wabridge.session_adapter import SessionAdapter
from wabridge.transport.channel import ObserverChannel

load_env_file()


def fake_qr_renderer(code: str) -> str:
    return f"data:image/png;base64,{code}"


class FakeSessionClient(SessionClient):
    """Session client driven by the test through ``emit``."""

    def __init__(
        self,
        initialize_error: Optional[Exception] = None,
        send_error: Optional[Exception] = None,
        contacts: Optional[Dict[str, Contact]] = None,
    ):
        super().__init__()
        self.initialize_error = initialize_error
        self.send_error = send_error
        self.contacts = contacts or {}
        self.initialize_calls = 0
        self.destroy_calls = 0
        self.sent: List[Tuple[str, str]] = []

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.initialize_error is not None:
            raise self.initialize_error

    async def send_message(self, chat_id: str, body: str) -> SentMessage:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, body))
        return SentMessage(id=f"true_{chat_id}_MSG{len(self.sent)}", to=chat_id, body=body)

    async def destroy(self) -> None:
        self.destroy_calls += 1

    def make_message(self, **kwargs: Any) -> RawMessage:
        """Build a raw message whose contact comes from ``self.contacts``."""
        contact_id = kwargs.get("author") or kwargs.get("from_", "")

        async def load_contact() -> Contact:
            if contact_id not in self.contacts:
                raise LookupError(contact_id)
            return self.contacts[contact_id]

        kwargs.setdefault("id", "false_5511999999999@c.us_ABC")
        kwargs.setdefault("to", "5511888888888@c.us")
        return RawMessage(contact_loader=load_contact, **kwargs)


class FakeClientFactory:
    """Callable client factory that remembers every client it built."""

    def __init__(self, **client_kwargs: Any):
        self.client_kwargs = client_kwargs
        self.created: List[FakeSessionClient] = []

    def __call__(self) -> FakeSessionClient:
        client = FakeSessionClient(**self.client_kwargs)
        self.created.append(client)
        return client

    @property
    def last(self) -> FakeSessionClient:
        return self.created[-1]


class RecordingChannel(ObserverChannel):
    """Observer channel that keeps every message it is sent."""

    def __init__(self, channel_id: Optional[str] = None):
        super().__init__(channel_id)
        self.messages: List[Tuple[str, Dict[str, Any]]] = []

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        self.messages.append((event, data))

    @property
    def events(self) -> List[str]:
        return [event for event, _ in self.messages]


class FailingChannel(RecordingChannel):
    """Observer channel whose writes always fail."""

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        raise ConnectionError("observer went away")


class SlowChannel(RecordingChannel):
    """Observer channel whose writes never finish in time."""

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        await asyncio.sleep(10)


class StallingChannel(RecordingChannel):
    """Observer channel that takes the resync snapshot, then stalls on every write."""

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        if self.messages:
            await asyncio.sleep(10)
        self.messages.append((event, data))


@pytest.fixture
def error_handler():
    return ErrorHandler()


@pytest.fixture
def store():
    return SessionStateStore()


@pytest.fixture
def hub(store, error_handler):
    return BroadcastHub(
        store,
        qr_renderer=fake_qr_renderer,
        send_timeout=0.2,
        error_handler=error_handler,
    )


@pytest.fixture
def client_factory():
    return FakeClientFactory()


@pytest.fixture
def adapter(store, hub, client_factory, error_handler):
    return SessionAdapter(
        store,
        hub,
        client_factory=client_factory,
        qr_renderer=fake_qr_renderer,
        error_handler=error_handler,
    )


@pytest.fixture
def make_channel():
    """Factory for observer channels: ``make_channel("failing")``."""
    kinds = {
        "recording": RecordingChannel,
        "failing": FailingChannel,
        "slow": SlowChannel,
        "stalling": StallingChannel,
    }

    def _make(kind: str = "recording", channel_id: Optional[str] = None) -> RecordingChannel:
        return kinds[kind](channel_id)

    return _make


@pytest.fixture
def make_adapter(store, hub, error_handler):
    """Build an adapter whose clients are created with ``client_kwargs``."""

    def _make(qr_renderer=fake_qr_renderer, **client_kwargs: Any):
        factory = FakeClientFactory(**client_kwargs)
        adapter = SessionAdapter(
            store,
            hub,
            client_factory=factory,
            qr_renderer=qr_renderer,
            error_handler=error_handler,
        )
        return adapter, factory

    return _make
