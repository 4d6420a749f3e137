# =============================================================================
# fleet_core/notifications/__init__.py
# Operation notices and the notification feed
# =============================================================================

from .notifier import Notice, NoticeLevel, Notifier
from .feed import Notification, NotificationFeed, seed_notifications, NOTIFICATION_TYPES

__all__ = [
    "Notice",
    "NoticeLevel",
    "Notifier",
    "Notification",
    "NotificationFeed",
    "seed_notifications",
    "NOTIFICATION_TYPES",
]
