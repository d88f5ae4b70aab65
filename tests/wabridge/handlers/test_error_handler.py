"""
Unit tests for the error handler.

Covers severity-based logging, the metadata in log lines and the per-context
and per-severity counters.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from wabridge.handlers import error_handler as error_handler_module
from wabridge.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)


def raised(error: Exception) -> Exception:
    """Return ``error`` with a traceback attached."""
    try:
        raise error
    except Exception as e:
        return e


class TestEnums:
    def test_error_context_values(self):
        assert [c.value for c in ErrorContext] == [
            "session",
            "client",
            "broadcast",
            "api",
            "render",
            "unknown",
        ]

    def test_error_severity_values(self):
        assert [s.value for s in ErrorSeverity] == ["low", "medium", "high", "critical"]


class TestErrorHandler:
    @pytest.fixture
    def mock_logger(self):
        return MagicMock(spec=logging.Logger)

    @pytest.fixture
    def handler(self, mock_logger):
        return ErrorHandler(mock_logger)

    def test_initial_stats_are_zero(self, handler):
        stats = handler.get_error_stats()
        assert stats["total_errors"] == 0
        assert set(stats["error_counts"].values()) == {0}
        assert set(stats["severity_counts"].values()) == {0}
        assert stats["last_errors"] == {}

    def test_default_logger(self):
        assert isinstance(ErrorHandler().logger, logging.Logger)

    @pytest.mark.parametrize(
        "severity,level",
        [
            (ErrorSeverity.LOW, logging.DEBUG),
            (ErrorSeverity.MEDIUM, logging.WARNING),
            (ErrorSeverity.HIGH, logging.ERROR),
            (ErrorSeverity.CRITICAL, logging.CRITICAL),
        ],
    )
    @pytest.mark.asyncio
    async def test_log_level_follows_severity(self, handler, mock_logger, severity, level):
        await handler.handle_error(ValueError("boom"), ErrorContext.SESSION, severity)

        assert mock_logger.log.call_args.args[0] == level

    @pytest.mark.asyncio
    async def test_log_line_names_context_operation_and_metadata(self, handler, mock_logger):
        await handler.handle_error(
            ConnectionError("observer went away"),
            context=ErrorContext.BROADCAST,
            operation="deliver",
            channel_id="abc",
            event="qr",
        )

        message = mock_logger.log.call_args.args[1]
        assert message == (
            "Error in broadcast (deliver): observer went away [channel_id=abc, event=qr]"
        )

    @pytest.mark.asyncio
    async def test_traceback_only_for_high_severity(self, handler, mock_logger):
        error = raised(RuntimeError("browser crashed"))

        await handler.handle_error(error, ErrorContext.CLIENT, ErrorSeverity.HIGH)
        assert mock_logger.log.call_args.kwargs["exc_info"] is error

        await handler.handle_error(error, ErrorContext.CLIENT, ErrorSeverity.LOW)
        assert mock_logger.log.call_args.kwargs["exc_info"] is None

    @pytest.mark.asyncio
    async def test_error_without_traceback_logs_without_exc_info(self, handler, mock_logger):
        await handler.handle_error(RuntimeError("never raised"), severity=ErrorSeverity.CRITICAL)

        assert mock_logger.log.call_args.kwargs["exc_info"] is None

    @pytest.mark.asyncio
    async def test_counters(self, handler):
        await handler.handle_error(ValueError("a"), ErrorContext.CLIENT, ErrorSeverity.HIGH)
        await handler.handle_error(ValueError("b"), ErrorContext.CLIENT, ErrorSeverity.LOW)
        await handler.handle_error(ValueError("c"), ErrorContext.BROADCAST, operation="deliver")

        stats = handler.get_error_stats()
        assert stats["error_counts"]["client"] == 2
        assert stats["error_counts"]["broadcast"] == 1
        assert stats["severity_counts"] == {"low": 1, "medium": 1, "high": 1, "critical": 0}
        assert stats["total_errors"] == 3
        assert stats["last_errors"] == {"client": "unknown: b", "broadcast": "deliver: c"}

    @pytest.mark.asyncio
    async def test_default_context_is_unknown(self, handler):
        await handler.handle_error(ValueError("x"))
        assert handler.get_error_stats()["error_counts"]["unknown"] == 1


class TestGlobalErrorHandler:
    @pytest.fixture(autouse=True)
    def fresh_global_handler(self):
        with patch.object(error_handler_module, "_error_handler", None):
            yield

    def test_get_error_handler_is_singleton(self):
        assert get_error_handler() is get_error_handler()

    @pytest.mark.asyncio
    async def test_components_share_the_global_handler(self):
        await get_error_handler().handle_error(ValueError("bad"), ErrorContext.API)
        assert get_error_handler().get_error_stats()["error_counts"]["api"] == 1
