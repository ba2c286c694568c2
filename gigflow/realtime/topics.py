"""Topic naming and the publisher interface.

Every authenticated connection is subscribed to its owner's private topic
(``user:<id>``). Clients may also join a per-gig topic (``gig:<id>``) to
follow bidding and hiring on that gig.
"""

from typing import Any, Dict, Protocol, runtime_checkable

USER_TOPIC_PREFIX = "user:"
GIG_TOPIC_PREFIX = "gig:"

# Server-to-client event names
NEW_BID_EVENT = "new-bid"
GIG_HIRED_EVENT = "gig-hired"

# Client-to-server event names
JOIN_GIG_EVENT = "join-gig"
LEAVE_GIG_EVENT = "leave-gig"


def user_topic(user_id: str) -> str:
    """Private topic for a user's notifications."""
    return f"{USER_TOPIC_PREFIX}{user_id}"


def gig_topic(gig_id: str) -> str:
    """Public update topic for a gig."""
    return f"{GIG_TOPIC_PREFIX}{gig_id}"


@runtime_checkable
class EventPublisher(Protocol):
    """Anything that can push an event to the subscribers of a topic."""

    def publish(self, topic: str, event: str, data: Dict[str, Any]) -> int:
        """Deliver an event to the topic's current subscribers.

        Returns the number of connections the event was handed to.
        """
        ...
