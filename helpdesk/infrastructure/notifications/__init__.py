"""Realtime notification helpers for the infrastructure layer."""

from .manager import NotificationChannel
from .payloads import (
    ANNOUNCEMENT_EVENT,
    DASHBOARD_UPDATE_EVENT,
    NOTIFICATION_EVENT,
    PROMOTION_ALERT_EVENT,
    recipient_group,
    role_group,
    serialize_notification,
)

__all__ = [
    "ANNOUNCEMENT_EVENT",
    "DASHBOARD_UPDATE_EVENT",
    "NOTIFICATION_EVENT",
    "NotificationChannel",
    "PROMOTION_ALERT_EVENT",
    "recipient_group",
    "role_group",
    "serialize_notification",
]
