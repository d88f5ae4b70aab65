"""
Command gateway for the HTTP surface.

Maps the three commands (status, initialize, send-message) onto the session
state store and the session adapter, and turns the adapter's typed errors
into status codes and JSON bodies. The gateway holds no state of its own.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from wabridge.config.constants import MSG_SENT
from wabridge.config.logging_config import configure_logging
from wabridge.exceptions import DeliveryFailed, InvalidArgument, PreconditionFailed
from wabridge.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from wabridge.handlers.session_store import SessionStateStore
from wabridge.models.api_models import (
    ErrorResponse,
    MessageResponse,
    SendMessageResponse,
    StatusResponse,
)
from wabridge.session_adapter import SessionAdapter

logger = configure_logging("command_gateway")


@dataclass(frozen=True)
class CommandResult:
    """HTTP status code and JSON body of a command."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class CommandGateway:
    def __init__(
        self,
        store: SessionStateStore,
        adapter: SessionAdapter,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.store = store
        self.adapter = adapter
        self._error_handler = error_handler or get_error_handler()

    def status(self) -> CommandResult:
        state = self.store.state
        body = StatusResponse(status=state.status.value, hasQr=state.has_challenge)
        return CommandResult(200, body.model_dump())

    def initialize(self) -> CommandResult:
        result = self.adapter.initialize()
        return CommandResult(200, MessageResponse(message=result.message).model_dump())

    async def send_message(
        self, phone_number: Optional[str], message: Optional[str]
    ) -> CommandResult:
        try:
            message_id = await self.adapter.send_message(phone_number, message)
        except (InvalidArgument, PreconditionFailed) as e:
            logger.warning(f"Send-message rejected: {e}")
            return CommandResult(400, ErrorResponse(error=str(e)).model_dump(exclude_none=True))
        except DeliveryFailed as e:
            await self._error_handler.handle_error(
                e,
                context=ErrorContext.API,
                severity=ErrorSeverity.MEDIUM,
                operation="send_message",
                details=e.details,
            )
            return CommandResult(
                500, ErrorResponse(error=str(e), details=e.details).model_dump()
            )

        body = SendMessageResponse(success=True, message=MSG_SENT, messageId=message_id)
        return CommandResult(200, body.model_dump())
