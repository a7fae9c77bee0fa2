"""Group naming and wire payloads for realtime notification events."""

from __future__ import annotations

from typing import Any

from helpdesk.domain.entities import Notification, Role

NOTIFICATION_EVENT = "notification"
ANNOUNCEMENT_EVENT = "announcement"
PROMOTION_ALERT_EVENT = "promotion_alert"
DASHBOARD_UPDATE_EVENT = "dashboard_update"


def recipient_group(recipient_id: int) -> str:
    return f"recipient:{recipient_id}"


def role_group(role: Role) -> str:
    return f"role:{role.value}"


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON representation shared by pushes and the HTTP API."""

    return {
        "id": notification.id,
        "user_id": notification.recipient_id,
        "type": notification.type.value,
        "message": notification.message,
        "title": notification.title,
        "body": notification.body,
        "related_type": notification.related_type,
        "related_id": notification.related_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat()
        if notification.created_at
        else None,
    }


__all__ = [
    "ANNOUNCEMENT_EVENT",
    "DASHBOARD_UPDATE_EVENT",
    "NOTIFICATION_EVENT",
    "PROMOTION_ALERT_EVENT",
    "recipient_group",
    "role_group",
    "serialize_notification",
]
