"""Session state model for the single WhatsApp session of this process.

The ``SessionState`` record is created once, in ``DISCONNECTED``, and is
mutated in place for the lifetime of the process by
``wabridge.handlers.session_store.SessionStateStore``. Every other component
only reads it.

Invariants:
    - ``pending_challenge`` is set only while ``status`` is ``AWAITING_SCAN``.
    - ``loading_progress`` is set only while ``status`` is ``LOADING``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SessionStatus(str, Enum):
    """Lifecycle status of the WhatsApp session.

    The values are the strings sent to observers and returned by the status
    endpoint.

    Attributes:
        DISCONNECTED: No session; initial state and the recovery state
        AWAITING_SCAN: A QR challenge was issued and waits to be scanned
        AUTHENTICATED: Credentials accepted, web app still starting
        READY: Session is connected and can send messages
        AUTH_FAILURE: Stored credentials were rejected
        LOADING: Web app is syncing (progress is reported)
    """

    DISCONNECTED = "disconnected"
    AWAITING_SCAN = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    LOADING = "loading"


class HandleState(Enum):
    """Ownership state of the adapter's client handle."""

    ABSENT = "absent"
    STARTING = "starting"
    LIVE = "live"


@dataclass(frozen=True)
class LoadingProgress:
    """Progress of the web app's loading screen."""

    percent: int
    message: str


@dataclass
class SessionState:
    """Current status of the session plus the data attached to that status."""

    status: SessionStatus = SessionStatus.DISCONNECTED
    pending_challenge: Optional[str] = None
    loading_progress: Optional[LoadingProgress] = field(default=None)

    @property
    def has_challenge(self) -> bool:
        """Whether a QR challenge is currently waiting to be scanned."""
        return self.pending_challenge is not None
