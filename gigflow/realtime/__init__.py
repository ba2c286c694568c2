"""Realtime delivery: topic naming and the connection registry."""

from gigflow.realtime.router import Connection, ConnectionState, TopicRouter
from gigflow.realtime.topics import (
    GIG_HIRED_EVENT,
    JOIN_GIG_EVENT,
    LEAVE_GIG_EVENT,
    NEW_BID_EVENT,
    EventPublisher,
    gig_topic,
    user_topic,
)

__all__ = [
    "TopicRouter",
    "Connection",
    "ConnectionState",
    "EventPublisher",
    "user_topic",
    "gig_topic",
    "NEW_BID_EVENT",
    "GIG_HIRED_EVENT",
    "JOIN_GIG_EVENT",
    "LEAVE_GIG_EVENT",
]
