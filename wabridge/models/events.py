"""
Pydantic models for the session event stream and its push channel wire shapes.

Two tagged unions flow out of the session adapter:

- ``LifecycleEvent``: authentication and connectivity transitions. These are
  applied to the session state store and then relayed to observers.
- ``ContentEvent``: inbound and outbound message notifications. These are
  relayed verbatim and never touch the session state.

Each model carries an ``event`` literal from ``SessionEventType``; the value is
also the event name used on the push channel. ``wire_payload()`` returns the
JSON body sent to observers, using the camelCase aliases of the wire format.
"""

import enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SessionEventType(str, enum.Enum):
    """Names of all messages sent on the push channel."""

    # Snapshot
    STATUS = "status"

    # Lifecycle events
    QR = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"
    LOADING = "loading"

    # Content events
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_SENT = "message_sent"


class BaseSessionEvent(BaseModel):
    """Base model for all session events."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event: SessionEventType

    def wire_payload(self) -> Dict[str, Any]:
        """JSON body for the push channel (every field except ``event``)."""
        return self.model_dump(by_alias=True, exclude={"event"})


# Lifecycle events
class QrIssued(BaseSessionEvent):
    """A new QR challenge must be scanned to link the device.

    Example payload:
    {
      "qr": "data:image/png;base64,iVBORw0KGgo...",
      "qrString": "2@ZmFrZS1xci1jb2Rl..."
    }
    """

    event: Literal[SessionEventType.QR] = SessionEventType.QR
    challenge: str = Field(..., alias="qrString", description="Raw challenge")
    rendered_image: Optional[str] = Field(
        None, alias="qr", description="PNG data URL, None when rendering failed"
    )


class Authenticated(BaseSessionEvent):
    event: Literal[SessionEventType.AUTHENTICATED] = SessionEventType.AUTHENTICATED


class Ready(BaseSessionEvent):
    event: Literal[SessionEventType.READY] = SessionEventType.READY


class AuthFailure(BaseSessionEvent):
    event: Literal[SessionEventType.AUTH_FAILURE] = SessionEventType.AUTH_FAILURE
    reason: str = Field("", alias="message")


class Disconnected(BaseSessionEvent):
    event: Literal[SessionEventType.DISCONNECTED] = SessionEventType.DISCONNECTED
    reason: str = ""


class Loading(BaseSessionEvent):
    event: Literal[SessionEventType.LOADING] = SessionEventType.LOADING
    percent: int = Field(..., ge=0, le=100)
    message: str = ""


# Content events
class MessageReceived(BaseSessionEvent):
    """An inbound message.

    For group chats ``from`` is the group id and ``contactId`` is the author;
    for direct chats both are the sender.
    """

    event: Literal[SessionEventType.MESSAGE_RECEIVED] = SessionEventType.MESSAGE_RECEIVED
    from_: str = Field(..., alias="from")
    author: Optional[str] = None
    contactId: Optional[str] = None
    contactName: Optional[str] = None
    body: str = ""
    timestamp: Optional[int] = None
    fromMe: bool = False
    hasMedia: bool = False
    message_type: str = Field("chat", alias="type")
    isGroup: bool = False
    id: str


class MessageSent(BaseSessionEvent):
    """An outbound message created by this account."""

    event: Literal[SessionEventType.MESSAGE_SENT] = SessionEventType.MESSAGE_SENT
    to: str
    contactName: Optional[str] = None
    body: str = ""
    timestamp: Optional[int] = None
    hasMedia: bool = False
    message_type: str = Field("chat", alias="type")
    isGroup: bool = False
    id: str


LifecycleEvent = Annotated[
    Union[QrIssued, Authenticated, Ready, AuthFailure, Disconnected, Loading],
    Field(discriminator="event"),
]

ContentEvent = Annotated[
    Union[MessageReceived, MessageSent],
    Field(discriminator="event"),
]

LIFECYCLE_EVENT_TYPES = (QrIssued, Authenticated, Ready, AuthFailure, Disconnected, Loading)
CONTENT_EVENT_TYPES = (MessageReceived, MessageSent)
