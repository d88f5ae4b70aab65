"""Session state store.

Holds the process-wide ``SessionState`` and is its only writer. The session
adapter's event pipeline feeds it one lifecycle event at a time through
``apply()``; the broadcast hub and the command gateway only read.

Transition table (initial state: DISCONNECTED, no terminal state):

    QrIssued       -> AWAITING_SCAN   store challenge
    Authenticated  -> AUTHENTICATED   clear challenge
    Ready          -> READY           clear challenge, clear loading
    AuthFailure    -> AUTH_FAILURE    clear challenge
    Disconnected   -> DISCONNECTED    clear challenge, clear loading
    Loading(p, m)  -> LOADING         store (p, m)

Leaving AWAITING_SCAN always clears the challenge and leaving LOADING always
clears the progress, whichever event causes it.
"""

from typing import Optional

from wabridge.config.logging_config import configure_logging
from wabridge.models.events import (
    LIFECYCLE_EVENT_TYPES,
    AuthFailure,
    Authenticated,
    Disconnected,
    Loading,
    QrIssued,
    Ready,
)
from wabridge.models.session_state import LoadingProgress, SessionState, SessionStatus

logger = configure_logging("session_store")


class SessionStateStore:
    """Owner of the single ``SessionState`` record of the process."""

    def __init__(self, state: Optional[SessionState] = None):
        self._state = state if state is not None else SessionState()

    @property
    def state(self) -> SessionState:
        """The live state record. Callers must treat it as read-only."""
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    def apply(self, event) -> SessionState:
        """Apply one lifecycle event and return the updated state.

        Args:
            event: One of the ``LifecycleEvent`` models

        Returns:
            SessionState: The (mutated in place) state record

        Raises:
            TypeError: If ``event`` is not a lifecycle event
        """
        if not isinstance(event, LIFECYCLE_EVENT_TYPES):
            raise TypeError(f"Not a lifecycle event: {type(event).__name__}")

        previous = self._state.status
        challenge: Optional[str] = None
        progress: Optional[LoadingProgress] = None

        if isinstance(event, QrIssued):
            new_status = SessionStatus.AWAITING_SCAN
            challenge = event.challenge
        elif isinstance(event, Authenticated):
            new_status = SessionStatus.AUTHENTICATED
        elif isinstance(event, Ready):
            new_status = SessionStatus.READY
        elif isinstance(event, AuthFailure):
            new_status = SessionStatus.AUTH_FAILURE
        elif isinstance(event, Disconnected):
            new_status = SessionStatus.DISCONNECTED
        elif isinstance(event, Loading):
            new_status = SessionStatus.LOADING
            progress = LoadingProgress(percent=event.percent, message=event.message)

        # Both fields are rewritten on every event so the invariants hold
        # whatever the previous status was.
        self._state.status = new_status
        self._state.pending_challenge = challenge
        self._state.loading_progress = progress

        if previous != new_status:
            logger.info(f"Session status: {previous.value} -> {new_status.value}")
        else:
            logger.debug(f"Session status unchanged: {new_status.value}")

        return self._state
