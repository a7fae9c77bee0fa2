from .notification import (
    AnnouncementCreate,
    NotificationActionResponse,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)

__all__ = [
    "AnnouncementCreate",
    "NotificationActionResponse",
    "NotificationListResponse",
    "NotificationRead",
    "UnreadCountResponse",
]
