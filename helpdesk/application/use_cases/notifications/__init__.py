"""Public helpers for emitting and managing notifications."""

from .events import (
    notify_offer_published,
    notify_payment_reported,
    notify_payment_reviewed,
    notify_ticket_assigned,
    notify_ticket_comment,
    notify_ticket_created,
    notify_ticket_status_changed,
)
from .service import DeliveryChannel, NotificationService, build_notification_service

__all__ = [
    "DeliveryChannel",
    "NotificationService",
    "build_notification_service",
    "notify_offer_published",
    "notify_payment_reported",
    "notify_payment_reviewed",
    "notify_ticket_assigned",
    "notify_ticket_comment",
    "notify_ticket_created",
    "notify_ticket_status_changed",
]
