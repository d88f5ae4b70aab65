"""Broadcast hub for session events.

Relays every lifecycle and content event of the session to all connected
observer channels, and brings newly connected observers up to date with a
resync snapshot instead of a history replay.

Delivery is best-effort per channel: a failed or timed-out write is reported
to the error handler and never stops delivery to the other channels, nor
reaches the event producer. The channel is then closed and deregistered, so
later events never wait on it again.

Fan-out and resync snapshots run under one lock, so every channel sees events
in the order the adapter produced them and a snapshot is never interleaved
with a later event.
"""

import asyncio
import weakref
from typing import Any, Callable, Dict, List, Optional, Tuple

from wabridge.config.constants import DEFAULT_SEND_TIMEOUT
from wabridge.config.logging_config import configure_logging
from wabridge.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from wabridge.handlers.session_store import SessionStateStore
from wabridge.models.events import (
    CONTENT_EVENT_TYPES,
    LIFECYCLE_EVENT_TYPES,
    AuthFailure,
    Authenticated,
    Disconnected,
    Ready,
    SessionEventType,
)
from wabridge.models.session_state import SessionStatus
from wabridge.transport.channel import ObserverChannel
from wabridge.utils.qr_renderer import render_qr_data_url

logger = configure_logging("broadcast_hub")

WireMessage = Tuple[str, Dict[str, Any]]

# Lifecycle events that are followed by a status message on the wire.
_STATUS_AFTER = {
    Authenticated: SessionStatus.AUTHENTICATED,
    Ready: SessionStatus.READY,
    AuthFailure: SessionStatus.AUTH_FAILURE,
    Disconnected: SessionStatus.DISCONNECTED,
}


def status_message(status: SessionStatus) -> WireMessage:
    return SessionEventType.STATUS.value, {"status": status.value}


def lifecycle_messages(event) -> List[WireMessage]:
    """Translate a lifecycle event into its push channel messages."""
    messages: List[WireMessage] = [(event.event.value, event.wire_payload())]
    follow_up = _STATUS_AFTER.get(type(event))
    if follow_up is not None:
        messages.append(status_message(follow_up))
    return messages


class BroadcastHub:
    """Fan-out of session events to observer channels.

    Attributes:
        store: Session state store, read for resync snapshots
        send_timeout: Seconds allowed for a single write to one channel
    """

    def __init__(
        self,
        store: SessionStateStore,
        qr_renderer: Callable[[str], str] = render_qr_data_url,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.store = store
        self.send_timeout = send_timeout
        self._qr_renderer = qr_renderer
        self._error_handler = error_handler or get_error_handler()
        # Non-owning registry: a channel that is garbage collected drops out.
        self._channels: "weakref.WeakValueDictionary[str, ObserverChannel]" = (
            weakref.WeakValueDictionary()
        )
        self._lock = asyncio.Lock()

    @property
    def observer_count(self) -> int:
        return len(self._channels)

    async def on_observer_connected(self, channel: ObserverChannel) -> None:
        """Register a channel and send it the resync snapshot.

        The snapshot is the current ``status`` and, while a challenge waits to
        be scanned, a ``qr`` message with the challenge re-rendered.
        """
        async with self._lock:
            self._channels[channel.channel_id] = channel
            logger.info(
                f"Observer connected: {channel.channel_id} (total: {self.observer_count})"
            )

            state = self.store.state
            messages = [status_message(state.status)]
            if state.status == SessionStatus.AWAITING_SCAN and state.pending_challenge:
                messages.append(await self._qr_message(state.pending_challenge))

            await self._deliver(channel, messages)

    def on_observer_disconnected(self, channel: ObserverChannel) -> None:
        """Deregister a channel. No acknowledgment, no draining."""
        removed = self._channels.pop(channel.channel_id, None)
        if removed is not None:
            logger.info(
                f"Observer disconnected: {channel.channel_id} (total: {self.observer_count})"
            )

    async def on_lifecycle_event(self, event) -> int:
        """Relay a lifecycle event to every registered channel.

        Returns:
            int: Number of channels that received every message
        """
        if not isinstance(event, LIFECYCLE_EVENT_TYPES):
            raise TypeError(f"Not a lifecycle event: {type(event).__name__}")
        return await self._fan_out(lifecycle_messages(event))

    async def on_content_event(self, event) -> int:
        """Relay a content event verbatim to every registered channel."""
        if not isinstance(event, CONTENT_EVENT_TYPES):
            raise TypeError(f"Not a content event: {type(event).__name__}")
        return await self._fan_out([(event.event.value, event.wire_payload())])

    async def publish(self, event) -> int:
        """Relay any session event, dispatching on its kind."""
        if isinstance(event, LIFECYCLE_EVENT_TYPES):
            return await self.on_lifecycle_event(event)
        return await self.on_content_event(event)

    async def _qr_message(self, challenge: str) -> WireMessage:
        image: Optional[str] = None
        try:
            image = self._qr_renderer(challenge)
        except Exception as e:
            await self._error_handler.handle_error(
                e,
                context=ErrorContext.RENDER,
                severity=ErrorSeverity.LOW,
                operation="resync_qr",
            )
        return SessionEventType.QR.value, {"qr": image, "qrString": challenge}

    async def _fan_out(self, messages: List[WireMessage]) -> int:
        async with self._lock:
            targets = [c for c in self._channels.values() if not c.closed]
            if not targets:
                logger.debug(f"No observers for {messages[0][0]}")
                return 0
            results = await asyncio.gather(
                *(self._deliver(channel, messages) for channel in targets)
            )
            delivered = sum(1 for ok in results if ok)
            logger.debug(f"Broadcast {messages[0][0]} to {delivered}/{len(targets)} observers")
            return delivered

    async def _deliver(self, channel: ObserverChannel, messages: List[WireMessage]) -> bool:
        """Write messages to one channel in order; stop at the first failure."""
        for event, data in messages:
            try:
                await asyncio.wait_for(channel.send(event, data), timeout=self.send_timeout)
            except Exception as e:
                await self._error_handler.handle_error(
                    e,
                    context=ErrorContext.BROADCAST,
                    severity=ErrorSeverity.MEDIUM,
                    operation="deliver",
                    channel_id=channel.channel_id,
                    event=event,
                )
                self._evict(channel)
                return False
        return True

    def _evict(self, channel: ObserverChannel) -> None:
        channel.mark_closed()
        if self._channels.get(channel.channel_id) is channel:
            del self._channels[channel.channel_id]
            logger.warning(
                f"Observer dropped after failed write: {channel.channel_id} "
                f"(total: {self.observer_count})"
            )
