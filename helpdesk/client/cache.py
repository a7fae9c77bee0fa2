"""Eventually-consistent in-memory cache of unread notifications."""

from __future__ import annotations

from typing import Iterable

from helpdesk.interfaces.api.schemas import NotificationRead


def _order_key(notification: NotificationRead) -> tuple:
    return (notification.created_at, notification.id)


class NotificationCache:
    """Mirror of the recipient's notification list and unread counter.

    Pushes are applied optimistically; a pull replaces the baseline. Entries
    are deduplicated by ``id`` so a row seen by both paths appears once.
    """

    def __init__(self) -> None:
        self._items: list[NotificationRead] = []
        self.unread_count = 0
        self.error: str | None = None

    @property
    def items(self) -> list[NotificationRead]:
        return list(self._items)

    def get(self, notification_id: int) -> NotificationRead | None:
        for item in self._items:
            if item.id == notification_id:
                return item
        return None

    def replace(self, items: Iterable[NotificationRead], unread_count: int) -> None:
        """Install a freshly pulled baseline.

        The counter never drops below the unread entries actually listed.
        """

        unique: dict[int, NotificationRead] = {}
        for item in items:
            unique.setdefault(item.id, item)
        self._items = sorted(unique.values(), key=_order_key, reverse=True)
        listed_unread = sum(1 for item in self._items if not item.is_read)
        self.unread_count = max(0, unread_count, listed_unread)
        self.error = None

    def apply_push(self, notification: NotificationRead) -> bool:
        """Insert ``notification``; return ``False`` when its id was already cached."""

        for index, existing in enumerate(self._items):
            if existing.id == notification.id:
                self._items[index] = notification
                return False

        position = 0
        key = _order_key(notification)
        while position < len(self._items) and _order_key(self._items[position]) > key:
            position += 1
        self._items.insert(position, notification)
        if not notification.is_read:
            self.unread_count += 1
        return True

    def mark_read(self, notification_id: int) -> None:
        for index, existing in enumerate(self._items):
            if existing.id != notification_id:
                continue
            if not existing.is_read:
                self._items[index] = existing.model_copy(update={"is_read": True})
                self.unread_count = max(0, self.unread_count - 1)
            return

    def mark_all_read(self) -> None:
        self._items = [
            item if item.is_read else item.model_copy(update={"is_read": True})
            for item in self._items
        ]
        self.unread_count = 0

    def remove(self, notification_id: int) -> None:
        item = self.get(notification_id)
        if item is None:
            return
        self._items.remove(item)
        if not item.is_read:
            self.unread_count = max(0, self.unread_count - 1)

    def fail(self, message: str) -> None:
        """Record a failed pull while keeping the last known state."""

        self.error = message

    def clear(self) -> None:
        self._items = []
        self.unread_count = 0
        self.error = None


__all__ = ["NotificationCache"]
