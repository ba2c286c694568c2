"""
Notification dispatcher.

Delivery happens in two phases:

1. The notification is persisted. A store failure raises StorageError and
   nothing is published.
2. The event is published to the recipient's private topic. Publishing is
   fire-and-forget: failures are logged and discarded, and the recipient
   still sees the record on their next inbox read.
"""

import logging
from typing import TYPE_CHECKING, Dict, Optional

from ..config import MarketplaceConfig
from ..errors import NotFoundError, StorageError, ValidationError
from ..realtime.topics import EventPublisher, user_topic
from ..utils import new_id, utc_now
from .models import NOTIFICATION_EVENT, Inbox, Notification, NotificationType

if TYPE_CHECKING:
    from gigflow.storage import MarketplaceStorage

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Creates, publishes and tracks read-state of notifications."""

    def __init__(
        self,
        storage: "MarketplaceStorage",
        publisher: Optional[EventPublisher] = None,
        config: Optional[MarketplaceConfig] = None,
    ):
        self.storage = storage
        self.publisher = publisher
        self.config = config or MarketplaceConfig()

    def notify(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        message: str,
        data: Optional[Dict[str, str]] = None,
    ) -> Notification:
        """Persist a notification, then publish it to the recipient.

        Raises:
            ValidationError: If the type, message or data keys are invalid
            StorageError: If the notification could not be persisted
        """
        type_value = (
            notification_type.value
            if isinstance(notification_type, NotificationType)
            else notification_type
        )
        payload = {k: str(v) for k, v in (data or {}).items() if v is not None}
        try:
            notification = Notification(
                id=new_id(),
                user_id=recipient_id,
                type=type_value,
                message=message,
                data=payload,
                read=False,
                created_at=utc_now(),
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        try:
            self.storage.save_notification(notification)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to persist notification for {recipient_id}: {e}")
            raise StorageError("Failed to persist notification") from e

        self._publish(notification)
        return notification

    def _publish(self, notification: Notification) -> None:
        if self.publisher is None:
            return
        try:
            self.publisher.publish(
                user_topic(notification.user_id),
                NOTIFICATION_EVENT,
                notification.to_event(),
            )
        except Exception as e:
            logger.warning(
                f"Publish failed for notification {notification.id} "
                f"to {notification.user_id}: {e}"
            )

    def mark_read(self, notification_id: str, owner_id: str) -> Notification:
        """Mark one of the owner's notifications as read.

        Raises:
            NotFoundError: If no notification with that id belongs to owner_id
        """
        updated = self.storage.mark_notification_read(notification_id, owner_id)
        if updated is None:
            raise NotFoundError("Notification not found")
        return updated

    def mark_all_read(self, owner_id: str) -> int:
        """Mark every unread notification of the owner as read.

        Returns:
            Number of notifications that changed. Zero on repeated calls.
        """
        count = self.storage.mark_all_notifications_read(owner_id)
        logger.debug(f"Marked {count} notifications read for {owner_id}")
        return count

    def list_inbox(self, owner_id: str, limit: Optional[int] = None) -> Inbox:
        """Most recent notifications first, plus the total unread count.

        The unread count covers the whole inbox, not just the returned page.
        """
        if limit is None:
            limit = self.config.inbox_limit
        limit = max(1, min(limit, self.config.max_inbox_limit))
        notifications = self.storage.list_notifications(owner_id, limit=limit)
        unread = self.storage.count_unread_notifications(owner_id)
        return Inbox(notifications=notifications, unread_count=unread)
