"""
Data models for the WhatsApp session bridge.

- session_state: session status, loading progress and the state record
- events: lifecycle/content event unions and their push channel payloads
- api_models: HTTP request and response bodies
"""

from .api_models import (
    ErrorResponse,
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
    StatusResponse,
)
from .events import (
    AuthFailure,
    Authenticated,
    ContentEvent,
    Disconnected,
    LifecycleEvent,
    Loading,
    MessageReceived,
    MessageSent,
    QrIssued,
    Ready,
    SessionEventType,
)
from .session_state import HandleState, LoadingProgress, SessionState, SessionStatus

__all__ = [
    "AuthFailure",
    "Authenticated",
    "ContentEvent",
    "Disconnected",
    "ErrorResponse",
    "HandleState",
    "LifecycleEvent",
    "Loading",
    "LoadingProgress",
    "MessageReceived",
    "MessageResponse",
    "MessageSent",
    "QrIssued",
    "Ready",
    "SendMessageRequest",
    "SendMessageResponse",
    "SessionEventType",
    "SessionState",
    "SessionStatus",
    "StatusResponse",
]
