"""Client-side mirror of a user's notifications."""

from .cache import NotificationCache
from .session import ConnectionState, NotificationClientSession, websocket_connector

__all__ = [
    "ConnectionState",
    "NotificationCache",
    "NotificationClientSession",
    "websocket_connector",
]
