"""Database models package."""
from app.db.models.notification_log import NotificationLogEntry
from app.db.models.notification_preference import NotificationPreference
from app.db.models.push_subscription import PushSubscription

__all__ = [
    "NotificationLogEntry",
    "NotificationPreference",
    "PushSubscription",
]
