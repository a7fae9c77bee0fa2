"""Domain entities exposed by the application."""

from .notification import (
    MESSAGE_TITLE_DELIMITER,
    Notification,
    NotificationType,
    compose_message,
    split_message,
)
from .role import (
    ROLE_CAPABILITIES,
    Capability,
    Role,
    authorize,
    has_capability,
    roles_with,
)
from .user import USER_STATUS_ACTIVE, Principal, User

__all__ = [
    "Capability",
    "MESSAGE_TITLE_DELIMITER",
    "Notification",
    "NotificationType",
    "Principal",
    "ROLE_CAPABILITIES",
    "Role",
    "USER_STATUS_ACTIVE",
    "User",
    "authorize",
    "compose_message",
    "has_capability",
    "roles_with",
    "split_message",
]
