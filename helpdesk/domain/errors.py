"""Error taxonomy shared by the notification subsystem."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for every error raised by the notification subsystem."""


class ValidationError(NotificationError, ValueError):
    """A required field is missing or holds an unsupported value."""


class NotFoundError(NotificationError, LookupError):
    """The target row does not exist or is not owned by the caller."""


class AuthError(NotificationError):
    """The credential is missing, malformed, expired or unknown."""


class PersistenceError(NotificationError, RuntimeError):
    """The relational store could not complete the operation."""


class DeliveryError(NotificationError, RuntimeError):
    """A realtime push could not be scheduled."""


__all__ = [
    "AuthError",
    "DeliveryError",
    "NotFoundError",
    "NotificationError",
    "PersistenceError",
    "ValidationError",
]
