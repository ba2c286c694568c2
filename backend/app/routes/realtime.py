"""WebSocket transport for realtime notifications and gig updates.

Frames in both directions are JSON objects ``{"event": ..., "data": ...}``.
Clients send ``join-gig`` / ``leave-gig`` with a gig id as data; the server
pushes ``notification``, ``new-bid`` and ``gig-hired``.

Events are published from request worker threads, so each connection owns
an asyncio queue that other threads feed with ``call_soon_threadsafe`` and a
writer task drains onto the socket.
"""

import asyncio
import contextlib
import json
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from gigflow.errors import AuthenticationError
from gigflow.realtime import JOIN_GIG_EVENT, LEAVE_GIG_EVENT, TopicRouter

from ..database import get_topic_router
from ..logging_config import get_logger

logger = get_logger("gigflow.realtime")
router = APIRouter(tags=["realtime"])

AUTH_FAILED_CLOSE_CODE = 4401
OUTBOUND_QUEUE_SIZE = 256


class WebSocketConnection:
    """Adapts a WebSocket to the router's Connection interface."""

    def __init__(self, ws: WebSocket, loop: asyncio.AbstractEventLoop):
        self.connection_id = uuid.uuid4().hex
        self.ws = ws
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=OUTBOUND_QUEUE_SIZE)

    def send(self, event: str, data: dict[str, Any]) -> None:
        """Queue a frame from any thread. Raises if the loop is gone."""
        self._loop.call_soon_threadsafe(self._enqueue, {"event": event, "data": data})

    def _enqueue(self, frame: dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full, dropping {frame['event']} for {self.connection_id}")

    async def writer(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                await self.ws.send_json(frame)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"Writer for {self.connection_id} stopped: {e!r}")
                return
            finally:
                self._queue.task_done()


def _token_from(ws: WebSocket) -> str | None:
    token = ws.query_params.get("token")
    if token:
        return token
    header = ws.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def _handle_frame(topics: TopicRouter, connection_id: str, raw: str) -> None:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug(f"Ignoring malformed frame from {connection_id}")
        return
    if not isinstance(frame, dict):
        return
    event, gig_id = frame.get("event"), frame.get("data")
    if not isinstance(gig_id, str):
        return
    if event == JOIN_GIG_EVENT:
        topics.join_gig(connection_id, gig_id)
    elif event == LEAVE_GIG_EVENT:
        topics.leave_gig(connection_id, gig_id)


@router.websocket("/ws")
async def realtime_socket(ws: WebSocket):
    await ws.accept()
    topics = get_topic_router()
    connection = WebSocketConnection(ws, asyncio.get_running_loop())

    try:
        user_id = topics.connect(connection, _token_from(ws))
    except AuthenticationError as e:
        logger.info(f"WS /ws | rejected: {e.message}")
        await ws.close(code=AUTH_FAILED_CLOSE_CODE, reason=e.message)
        return

    logger.info(f"WS /ws | user={user_id} | connection={connection.connection_id}")
    writer = asyncio.create_task(connection.writer())
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.debug(f"Ignoring binary frame from {connection.connection_id}")
                continue
            _handle_frame(topics, connection.connection_id, raw)
    except WebSocketDisconnect:
        pass
    finally:
        topics.disconnect(connection.connection_id)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
