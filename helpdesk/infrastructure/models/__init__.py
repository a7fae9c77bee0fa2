"""ORM models used by the application infrastructure."""

from .notification import NotificationModel
from .user import UserModel

__all__ = ["NotificationModel", "UserModel"]
