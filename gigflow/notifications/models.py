"""Notification records and the realtime event they publish as."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

NOTIFICATION_EVENT = "notification"
DATA_KEYS = ("gigId", "bidId", "userId")


class NotificationType(str, Enum):
    """Kinds of notification a user can receive."""

    NEW_BID = "new-bid"
    BID_ACCEPTED = "bid-accepted"
    BID_REJECTED = "bid-rejected"
    GIG_HIRED = "gig-hired"


@dataclass
class Notification:
    """An inbox entry for a single recipient.

    ``data`` holds optional references under the keys gigId, bidId and userId.
    """

    id: str
    user_id: str
    type: str
    message: str
    data: Dict[str, str] = field(default_factory=dict)
    read: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        valid_types = [t.value for t in NotificationType]
        if self.type not in valid_types:
            raise ValueError(f"Invalid notification type: {self.type}. Must be one of {valid_types}")
        if not self.message:
            raise ValueError("Notification message cannot be empty")
        unknown = set(self.data) - set(DATA_KEYS)
        if unknown:
            raise ValueError(f"Unknown notification data keys: {sorted(unknown)}")

    def to_event(self) -> Dict[str, Any]:
        """Shape published on the recipient's private topic."""
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "data": dict(self.data),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Inbox:
    """A page of notifications plus the owner's total unread count."""

    notifications: list
    unread_count: int
