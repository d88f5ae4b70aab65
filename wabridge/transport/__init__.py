"""Push transport for observers."""

from .channel import ObserverChannel, WebSocketObserverChannel

__all__ = ["ObserverChannel", "WebSocketObserverChannel"]
