"""Observer channels for the push transport.

An ``ObserverChannel`` is one connected remote observer. Its lifecycle is
bound to the underlying connection: it is created when the connection is
accepted and is closed when the connection goes away. The broadcast hub only
holds weak references to channels. It marks a channel closed after a failed
write but never closes the underlying connection.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState


class ObserverChannel(ABC):
    """One full-duplex connection to a remote observer."""

    def __init__(self, channel_id: Optional[str] = None):
        self.channel_id = channel_id or uuid.uuid4().hex
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        self._closed = True

    @abstractmethod
    async def send(self, event: str, data: Dict[str, Any]) -> None:
        """Write one push message. Raises if the write fails."""

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<{type(self).__name__} {self.channel_id} {state}>"


class WebSocketObserverChannel(ObserverChannel):
    """Observer channel over a FastAPI/Starlette websocket.

    Messages are JSON objects of the form ``{"event": ..., "data": {...}}``.
    """

    def __init__(self, websocket: WebSocket, channel_id: Optional[str] = None):
        super().__init__(channel_id)
        self.websocket = websocket

    @property
    def closed(self) -> bool:
        if self._closed:
            return True
        return (
            self.websocket.application_state == WebSocketState.DISCONNECTED
            or self.websocket.client_state == WebSocketState.DISCONNECTED
        )

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event, "data": data})
