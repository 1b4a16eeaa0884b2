"""
Notification schemas package.
"""

from library_desk.schemas.notification.notification_log import NotificationLogEntry

__all__ = ["NotificationLogEntry"]
