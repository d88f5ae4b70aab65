"""Messaging session clients."""

from .base_client import (
    CLIENT_EVENTS,
    Contact,
    RawMessage,
    SentMessage,
    SessionClient,
    Subscription,
)
from .whatsapp_web_client import WhatsAppWebClient

__all__ = [
    "CLIENT_EVENTS",
    "Contact",
    "RawMessage",
    "SentMessage",
    "SessionClient",
    "Subscription",
    "WhatsAppWebClient",
]
