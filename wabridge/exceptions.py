"""Error taxonomy for the session bridge.

Command errors (``InvalidArgument``, ``PreconditionFailed``, ``DeliveryFailed``)
are raised synchronously to the caller. Background failures
(``InitializationFailed``, ``RenderFailed``) are never raised to a caller; they
are reported through the error handler and surface as lifecycle state.
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for all session bridge errors."""


class InvalidArgument(BridgeError):
    """A command was called with missing or malformed input."""


class PreconditionFailed(BridgeError):
    """A command was attempted while the session is in the wrong state."""


class DeliveryFailed(BridgeError):
    """The underlying client failed to deliver an outbound message."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.details = details if details is not None else message


class InitializationFailed(BridgeError):
    """The underlying client could not be started."""


class RenderFailed(BridgeError):
    """A QR challenge could not be encoded into an image."""
