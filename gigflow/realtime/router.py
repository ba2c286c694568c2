"""
Realtime topic router.

Tracks which live connections are subscribed to which topics. Each
connection moves through::

    CONNECTING -> AUTHENTICATED -> JOINED -> DISCONNECTED

A connection is authenticated once, synchronously, when it is registered.
A missing or invalid credential never reaches AUTHENTICATED: the
connection is marked DISCONNECTED and AuthenticationError is raised so the
transport can close it. Authenticated connections are subscribed to their
own user topic straight away.

The registry keeps a forward map (connection -> topics) and a reverse map
(topic -> connections) so that publishing is a single lookup. Publishes
arrive from request worker threads while joins arrive from the transport's
event loop, so both maps are guarded by one lock. Sends happen outside the
lock.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from ..errors import AuthenticationError
from .topics import gig_topic, user_topic

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str], str]


class ConnectionState(str, Enum):
    """Lifecycle state of a realtime connection."""

    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class Connection(Protocol):
    """Transport-side handle for one client connection."""

    connection_id: str

    def send(self, event: str, data: Dict[str, Any]) -> None:
        """Queue an event for delivery to the client. Must not block."""
        ...


class _Session:
    """Router-side bookkeeping for one connection."""

    def __init__(self, connection: Connection):
        self.connection = connection
        self.user_id: Optional[str] = None
        self.state = ConnectionState.CONNECTING
        self.topics: Set[str] = set()


class TopicRouter:
    """Connection registry and topic fan-out."""

    def __init__(self, verify_token: TokenVerifier):
        """
        Args:
            verify_token: Returns the user id for a valid bearer token and
                raises for anything else.
        """
        self._verify_token = verify_token
        self._lock = threading.Lock()
        self._sessions: Dict[str, _Session] = {}
        self._subscribers: Dict[str, Set[str]] = {}

    # === Connection lifecycle ===

    def connect(self, connection: Connection, token: Optional[str]) -> str:
        """Authenticate a new connection and subscribe it to its user topic.

        Returns:
            The authenticated user id.

        Raises:
            AuthenticationError: If the token is missing or invalid. The
                connection is not registered.
        """
        session = _Session(connection)
        if not token:
            session.state = ConnectionState.DISCONNECTED
            logger.info(f"Rejected connection {connection.connection_id}: no token")
            raise AuthenticationError("Authentication required")
        try:
            user_id = self._verify_token(token)
        except Exception as e:
            session.state = ConnectionState.DISCONNECTED
            logger.info(f"Rejected connection {connection.connection_id}: {e}")
            raise AuthenticationError("Invalid token") from e
        if not user_id:
            session.state = ConnectionState.DISCONNECTED
            raise AuthenticationError("Invalid token")

        session.user_id = user_id
        session.state = ConnectionState.AUTHENTICATED
        with self._lock:
            self._sessions[connection.connection_id] = session
            self._subscribe(session, user_topic(user_id))
        logger.info(f"User connected: {user_id} ({connection.connection_id})")
        return user_id

    def disconnect(self, connection_id: str) -> None:
        """Drop a connection and every topic membership it held."""
        with self._lock:
            session = self._sessions.pop(connection_id, None)
            if session is None:
                return
            for topic in session.topics:
                members = self._subscribers.get(topic)
                if members is not None:
                    members.discard(connection_id)
                    if not members:
                        del self._subscribers[topic]
            session.topics.clear()
            session.state = ConnectionState.DISCONNECTED
        logger.info(f"User disconnected: {session.user_id} ({connection_id})")

    def state_of(self, connection_id: str) -> ConnectionState:
        with self._lock:
            session = self._sessions.get(connection_id)
            return session.state if session else ConnectionState.DISCONNECTED

    # === Gig topics ===

    def join_gig(self, connection_id: str, gig_id: str) -> None:
        """Subscribe to a gig's updates. Joining twice is a no-op."""
        if not gig_id:
            return
        with self._lock:
            session = self._sessions.get(connection_id)
            if session is None:
                return
            self._subscribe(session, gig_topic(gig_id))
            session.state = ConnectionState.JOINED

    def leave_gig(self, connection_id: str, gig_id: str) -> None:
        """Unsubscribe from a gig's updates. Leaving a non-joined gig is a no-op."""
        if not gig_id:
            return
        topic = gig_topic(gig_id)
        with self._lock:
            session = self._sessions.get(connection_id)
            if session is None or topic not in session.topics:
                return
            session.topics.discard(topic)
            members = self._subscribers.get(topic)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._subscribers[topic]
            if session.topics == {user_topic(session.user_id)}:
                session.state = ConnectionState.AUTHENTICATED

    def _subscribe(self, session: _Session, topic: str) -> None:
        # Caller holds self._lock
        session.topics.add(topic)
        self._subscribers.setdefault(topic, set()).add(session.connection.connection_id)

    # === Fan-out ===

    def publish(self, topic: str, event: str, data: Dict[str, Any]) -> int:
        """Hand an event to every connection currently subscribed to topic.

        A failing connection does not stop delivery to the others.

        Returns:
            Number of connections the event was handed to.
        """
        with self._lock:
            targets = [
                self._sessions[cid].connection
                for cid in self._subscribers.get(topic, ())
                if cid in self._sessions
            ]

        delivered = 0
        for connection in targets:
            try:
                connection.send(event, data)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Failed to send {event} to {connection.connection_id} on {topic}: {e}"
                )
        logger.debug(f"Published {event} to {topic} | delivered={delivered}")
        return delivered

    # === Introspection ===

    def topics_for(self, connection_id: str) -> Set[str]:
        with self._lock:
            session = self._sessions.get(connection_id)
            return set(session.topics) if session else set()

    def subscribers(self, topic: str) -> List[str]:
        with self._lock:
            return sorted(self._subscribers.get(topic, ()))

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._sessions)
