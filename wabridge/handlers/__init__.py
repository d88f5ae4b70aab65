"""
Session handlers module.

Components:
- SessionStateStore: Single writer of the session state record
- BroadcastHub: Fans session events out to observer channels
- ErrorHandler: Logs and counts errors of the background paths
"""

from .broadcast_hub import BroadcastHub
from .error_handler import ErrorContext, ErrorHandler, ErrorSeverity, get_error_handler
from .session_store import SessionStateStore

__all__ = [
    "BroadcastHub",
    "ErrorContext",
    "ErrorHandler",
    "ErrorSeverity",
    "SessionStateStore",
    "get_error_handler",
]
