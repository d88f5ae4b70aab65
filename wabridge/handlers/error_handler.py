"""
Error reporting for the background paths of the bridge.

Client start-up, event translation, observer fan-out and QR rendering never
raise to a caller. They report here instead, with an ``ErrorContext`` naming
the component and an ``ErrorSeverity`` deciding the log level:

    await get_error_handler().handle_error(
        exception,
        context=ErrorContext.CLIENT,
        severity=ErrorSeverity.HIGH,
        operation="initialize",
    )

Counters per context and per severity are kept for ``get_error_stats()``.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from wabridge.config.logging_config import configure_logging


class ErrorContext(Enum):
    """Component that reported the error."""

    SESSION = "session"
    CLIENT = "client"
    BROADCAST = "broadcast"
    API = "api"
    RENDER = "render"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorHandler:
    """Logs reported errors and counts them.

    Attributes:
        logger: Logger the reports are written to
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or configure_logging("error_handler")
        self._by_context: Dict[ErrorContext, int] = {c: 0 for c in ErrorContext}
        self._by_severity: Dict[ErrorSeverity, int] = {s: 0 for s in ErrorSeverity}
        self._last_error: Dict[ErrorContext, str] = {}

    async def handle_error(
        self,
        error: Exception,
        context: ErrorContext = ErrorContext.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        operation: str = "unknown",
        **metadata: Any,
    ) -> None:
        """Record one error.

        Args:
            error: The exception that occurred
            context: Component that reported it
            severity: Decides the log level; HIGH and above log the traceback
            operation: Name of the operation that failed
            **metadata: Extra fields appended to the log line
        """
        self._by_context[context] += 1
        self._by_severity[severity] += 1
        self._last_error[context] = f"{operation}: {error}"

        extra = ", ".join(f"{key}={value}" for key, value in metadata.items())
        message = f"Error in {context.value} ({operation}): {error}"
        if extra:
            message = f"{message} [{extra}]"

        with_traceback = severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL)
        self.logger.log(
            _LOG_LEVELS[severity],
            message,
            exc_info=error if with_traceback and error.__traceback__ else None,
        )

    def get_error_stats(self) -> Dict[str, Any]:
        return {
            "error_counts": {c.value: n for c, n in self._by_context.items()},
            "severity_counts": {s.value: n for s, n in self._by_severity.items()},
            "total_errors": sum(self._by_context.values()),
            "last_errors": {c.value: text for c, text in self._last_error.items()},
        }


_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Process-wide error handler, created on first use."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler
