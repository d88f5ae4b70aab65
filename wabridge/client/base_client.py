"""Base class for messaging session clients.

A session client owns one connection to the messaging network (for the
default implementation, a headless WhatsApp Web page) and exposes it as an
opaque capability:

- raw lifecycle/content events, delivered to subscribers registered with
  ``on()``; each registration returns a cancellable ``Subscription``
- ``initialize()`` to start the session
- ``send_message()`` to dispatch a text message
- ``destroy()`` to release every resource the client holds

Raw event names and callback arguments:

    qr              (code: str)
    authenticated   ()
    auth_failure    (message: str)
    ready           ()
    disconnected    (reason: str)
    loading_screen  (percent: int, message: str)
    message         (message: RawMessage)   inbound message
    message_create  (message: RawMessage)   any message created, own ones included
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from wabridge.config.logging_config import configure_logging

logger = configure_logging("session_client")

CLIENT_EVENTS = (
    "qr",
    "authenticated",
    "auth_failure",
    "ready",
    "disconnected",
    "loading_screen",
    "message",
    "message_create",
)


@dataclass(frozen=True)
class Contact:
    """Contact details as known to the messaging network."""

    id: str
    pushname: Optional[str] = None
    name: Optional[str] = None
    number: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        return self.pushname or self.name or self.number


@dataclass
class RawMessage:
    """A message as reported by the client, before translation.

    ``contact_loader`` resolves the contact of the message on demand; it is
    provided by the client that produced the message.
    """

    id: str
    from_: str
    to: str
    body: str = ""
    author: Optional[str] = None
    timestamp: Optional[int] = None
    from_me: bool = False
    has_media: bool = False
    type: str = "chat"
    contact_loader: Optional[Callable[[], Awaitable[Contact]]] = field(
        default=None, repr=False, compare=False
    )

    async def get_contact(self) -> Contact:
        if self.contact_loader is None:
            raise LookupError(f"No contact resolver for message {self.id}")
        return await self.contact_loader()


@dataclass(frozen=True)
class SentMessage:
    """Result of a successful ``send_message``."""

    id: str
    to: str
    body: str
    timestamp: Optional[int] = None


class Subscription:
    """Handle for one event callback registration."""

    def __init__(self, client: "SessionClient", event: str, callback: Callable):
        self._client = client
        self.event = event
        self.callback = callback
        self.active = True

    def cancel(self) -> bool:
        """Remove the callback. Returns False if it was already removed."""
        if not self.active:
            return False
        self.active = False
        return self._client._remove_subscription(self)


class SessionClient(ABC):
    """Abstract session client with event subscription support."""

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[Subscription]] = {
            event: [] for event in CLIENT_EVENTS
        }

    def on(self, event: str, callback: Callable[..., Any]) -> Subscription:
        """Subscribe ``callback`` to a raw client event.

        Callbacks may be plain functions or coroutine functions.

        Raises:
            ValueError: If ``event`` is not a known client event
        """
        if event not in self._subscriptions:
            raise ValueError(f"Unknown client event: {event}")
        subscription = Subscription(self, event, callback)
        self._subscriptions[event].append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> bool:
        subscribers = self._subscriptions.get(subscription.event, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
            return True
        return False

    def subscriber_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._subscriptions.get(event, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    async def emit(self, event: str, *args: Any) -> None:
        """Deliver an event to its subscribers in registration order.

        A failing subscriber is logged and does not prevent delivery to the
        others.
        """
        for subscription in list(self._subscriptions.get(event, [])):
            try:
                result = subscription.callback(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Subscriber for '{event}' failed: {e}")

    @abstractmethod
    async def initialize(self) -> None:
        """Start the session. Raises if the client cannot be started."""

    @abstractmethod
    async def send_message(self, chat_id: str, body: str) -> SentMessage:
        """Send a text message to a fully qualified chat id."""

    @abstractmethod
    async def destroy(self) -> None:
        """Release all resources. Safe to call more than once."""
