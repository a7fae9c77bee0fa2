"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

MESSAGE_TITLE_DELIMITER = "|||"


class NotificationType(str, Enum):
    """Presentation hint attached to every notification."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Notification:
    """Information message delivered to a single recipient."""

    id: int
    recipient_id: int
    message: str
    type: NotificationType
    related_type: str | None = None
    related_id: int | None = None
    is_read: bool = False
    created_at: datetime | None = None

    @property
    def title(self) -> str | None:
        return split_message(self.message)[0]

    @property
    def body(self) -> str:
        return split_message(self.message)[1]


def split_message(message: str) -> tuple[str | None, str]:
    """Split ``message`` into ``(title, body)`` on the first ``|||``.

    Without the delimiter the whole string is the body and the title is
    ``None``.
    """

    title, delimiter, body = message.partition(MESSAGE_TITLE_DELIMITER)
    if not delimiter:
        return None, message
    return title, body


def compose_message(title: str | None, body: str) -> str:
    """Join ``title`` and ``body`` using the ``title|||body`` convention."""

    if title:
        return f"{title}{MESSAGE_TITLE_DELIMITER}{body}"
    return body


__all__ = [
    "MESSAGE_TITLE_DELIMITER",
    "Notification",
    "NotificationType",
    "compose_message",
    "split_message",
]
