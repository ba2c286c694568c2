"""Notification subsystem.

Models:
- Notification: An inbox entry for one recipient
- NotificationType: Kinds of notification
- Inbox: A page of notifications plus the unread count

Dispatcher:
- NotificationDispatcher: Persist-then-publish delivery and read tracking
"""

from gigflow.notifications.dispatcher import NotificationDispatcher
from gigflow.notifications.models import (
    NOTIFICATION_EVENT,
    Inbox,
    Notification,
    NotificationType,
)

__all__ = [
    "Notification",
    "NotificationType",
    "Inbox",
    "NOTIFICATION_EVENT",
    "NotificationDispatcher",
]
