"""Notification orchestration: persist first, push second."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy.orm import Session

from helpdesk.domain.entities import (
    Capability,
    Notification,
    NotificationType,
    Role,
    compose_message,
    roles_with,
    split_message,
)
from helpdesk.domain.errors import DeliveryError
from helpdesk.infrastructure.notifications import (
    ANNOUNCEMENT_EVENT,
    DASHBOARD_UPDATE_EVENT,
    NOTIFICATION_EVENT,
    PROMOTION_ALERT_EVENT,
    recipient_group,
    role_group,
    serialize_notification,
)
from helpdesk.infrastructure.repositories import NotificationRepository, UserRepository

logger = logging.getLogger(__name__)

SYSTEM_RELATED_TYPE = "system"
DEFAULT_POPUP_TITLE = "Novedad"


class DeliveryChannel(Protocol):
    def push(self, group: str, event_name: str, payload: Any) -> None:
        ...


class NotificationService:
    """Single entry point for creating and mutating notifications.

    The store is the source of truth; pushes only reduce latency, so a failed
    push never undoes a successful write.
    """

    def __init__(
        self,
        notifications: NotificationRepository,
        users: UserRepository,
        channel: DeliveryChannel,
    ) -> None:
        self._notifications = notifications
        self._users = users
        self._channel = channel

    def notify(
        self,
        recipient_id: int,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        *,
        related_type: str | None = None,
        related_id: int | None = None,
    ) -> Notification:
        """Persist a notification for ``recipient_id`` and push it to their sessions."""

        saved = self._notifications.create(
            recipient_id,
            message,
            type,
            related_type=related_type,
            related_id=related_id,
        )
        self._push(
            recipient_group(saved.recipient_id),
            NOTIFICATION_EVENT,
            serialize_notification(saved),
        )
        return saved

    def notify_role(
        self,
        role: Role,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        *,
        related_type: str | None = None,
        related_id: int | None = None,
    ) -> list[Notification]:
        """Persist one row per active member of ``role`` and push once to the role."""

        recipient_ids = self._users.list_active_ids_by_role(role)
        if not recipient_ids:
            return []

        saved = [
            self._notifications.create(
                recipient_id,
                message,
                type,
                related_type=related_type,
                related_id=related_id,
            )
            for recipient_id in recipient_ids
        ]
        first = saved[0]
        title, body = split_message(first.message)
        self._push(
            role_group(role),
            ANNOUNCEMENT_EVENT,
            {
                "role": role.value,
                "message": first.message,
                "title": title,
                "body": body,
                "type": first.type.value,
                "related_type": first.related_type,
                "related_id": first.related_id,
                "created_at": first.created_at.isoformat() if first.created_at else None,
                "count": len(saved),
            },
        )
        return saved

    def notify_all(
        self,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        *,
        related_type: str | None = None,
        related_id: int | None = None,
    ) -> list[Notification]:
        saved: list[Notification] = []
        for role in Role:
            saved.extend(
                self.notify_role(
                    role, message, type, related_type=related_type, related_id=related_id
                )
            )
        return saved

    def announce(
        self,
        *,
        title: str | None,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        target_role: Role | None = None,
        popup: bool = False,
    ) -> list[Notification]:
        """Send a system announcement to ``target_role`` (every role when ``None``).

        With ``popup`` set, connected sessions of the targeted roles also get a
        ``promotion_alert`` event carrying the title and body separately.
        """

        roles = [target_role] if target_role is not None else list(Role)
        composed = compose_message(title, message)
        saved: list[Notification] = []
        for role in roles:
            saved.extend(
                self.notify_role(role, composed, type, related_type=SYSTEM_RELATED_TYPE)
            )

        if popup and saved:
            alert = {
                "title": title or DEFAULT_POPUP_TITLE,
                "message": message,
                "type": saved[0].type.value,
            }
            for role in roles:
                self._push(role_group(role), PROMOTION_ALERT_EVENT, alert)
        return saved

    def broadcast_dashboard_update(self, message: str) -> None:
        """Push a non-persisted dashboard refresh hint to staff roles."""

        for role in roles_with(Capability.VIEW_DASHBOARD_UPDATES):
            self._push(role_group(role), DASHBOARD_UPDATE_EVENT, {"message": message})

    def list_for_recipient(
        self, recipient_id: int, *, limit: int | None = None
    ) -> list[Notification]:
        return self._notifications.list_by_recipient(recipient_id, limit=limit)

    def count_unread(self, recipient_id: int) -> int:
        return self._notifications.count_unread(recipient_id)

    def mark_read(self, notification_id: int, recipient_id: int) -> Notification:
        return self._notifications.mark_read(notification_id, recipient_id)

    def mark_all_read(self, recipient_id: int) -> int:
        return self._notifications.mark_all_read(recipient_id)

    def delete(self, notification_id: int, recipient_id: int) -> None:
        self._notifications.delete(notification_id, recipient_id)

    def delete_all(self, recipient_id: int) -> int:
        return self._notifications.delete_all(recipient_id)

    def _push(self, group: str, event_name: str, payload: Any) -> None:
        try:
            self._channel.push(group, event_name, payload)
        except DeliveryError as exc:
            logger.warning("Evento %s no entregado a %s: %s", event_name, group, exc)
        except Exception:
            logger.exception("Error inesperado al publicar %s en %s", event_name, group)


def build_notification_service(session: Session, channel: DeliveryChannel) -> NotificationService:
    """Wire a :class:`NotificationService` on top of ``session``."""

    return NotificationService(
        NotificationRepository(session), UserRepository(session), channel
    )


__all__ = ["DeliveryChannel", "NotificationService", "build_notification_service"]
