"""
WebSocket Manager

Manages live WebSocket connections for realtime notifications.

A user may hold several connections (tabs, devices); each one receives
every event pushed to that user. Delivery is fire-and-forget: at most
once per registered connection, no acknowledgement, no retry. The
persisted Notification row is the durable record; this layer only
reaches users who are online.

Backends:
- local: deliver straight to the sockets this process holds
- redis: publish on `notify:<user_id>`; every process subscribed to
  `notify:*` delivers to the sockets it holds
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional, Set
from uuid import UUID
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone

from fastapi import WebSocket
from redis.asyncio import Redis

from zord.core.config import settings
from zord.core.exceptions import DeliveryBestEffortFailure
from zord.db.redis import get_redis

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "notify:"


# ============================================================
# Message Types
# ============================================================

@dataclass
class RealtimeEvent:
    """Frame sent to a client connection."""
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, data: str) -> "RealtimeEvent":
        return cls(**json.loads(data))


class EventTypes:
    """WebSocket event type constants."""
    NOTIFICATION = "notification"  # A like/comment/follow landed
    CONNECTED = "connected"        # Connection established
    PONG = "pong"                  # Reply to a client "ping"


# ============================================================
# Connection Manager
# ============================================================

class ConnectionManager:
    """
    Registry of live connections keyed by user id.

    Constructed once per process and handed to whatever needs to push
    (see `zord.api.deps.get_connection_manager`). The maps are only
    mutated between awaits and `send` iterates over a snapshot, so
    registration, removal and dispatch can interleave freely.
    """

    def __init__(
        self,
        backend: str = "local",
        send_timeout: float = 5.0,
        redis_factory: Callable[[], Any] = get_redis,
    ):
        self.backend = backend
        self.send_timeout = send_timeout
        self._redis_factory = redis_factory

        # Map: user_id -> Set of WebSocket connections
        self._user_connections: Dict[str, Set[WebSocket]] = {}

        # Map: WebSocket -> user_id for cleanup
        self._connection_info: Dict[WebSocket, str] = {}

        # In-flight push tasks; held so they are not garbage-collected
        self._pending: Set[asyncio.Task] = set()

        # Redis subscription task
        self._redis_subscriber_task: Optional[asyncio.Task] = None

    # ============================================================
    # Connection Management
    # ============================================================

    async def connect(self, websocket: WebSocket, user_id: Any) -> None:
        """
        Accept and register a new WebSocket connection.

        Args:
            websocket: The WebSocket connection
            user_id: Authenticated user's id
        """
        await websocket.accept()
        self.register(websocket, user_id)

        # Send connection confirmation
        await self._send_to_socket(websocket, RealtimeEvent(
            type=EventTypes.CONNECTED,
            payload={"user_id": str(user_id), "status": "connected"},
        ))

        if self.backend == "redis":
            await self._ensure_redis_subscriber()

    def register(self, websocket: WebSocket, user_id: Any) -> None:
        """Join a connection to the delivery group of user_id."""
        key = str(user_id)

        # A socket belongs to exactly one user
        if websocket in self._connection_info:
            self.disconnect(websocket)

        self._user_connections.setdefault(key, set()).add(websocket)
        self._connection_info[websocket] = key

        logger.info(
            f"WebSocket registered: user={key}. "
            f"Connections for user: {len(self._user_connections[key])}"
        )

    def disconnect(self, websocket: WebSocket) -> None:
        """
        Remove a WebSocket connection from all tracking.

        Args:
            websocket: The disconnecting WebSocket
        """
        key = self._connection_info.pop(websocket, None)
        if key is None:
            return

        connections = self._user_connections.get(key)
        if connections is not None:
            connections.discard(websocket)
            if not connections:
                del self._user_connections[key]

        logger.info(f"WebSocket disconnected: user={key}")

    def connection_count(self, user_id: Any) -> int:
        """Number of live connections registered for a user."""
        return len(self._user_connections.get(str(user_id), ()))

    # ============================================================
    # Delivery
    # ============================================================

    async def send(self, user_id: Any, event: RealtimeEvent) -> int:
        """
        Deliver event to every connection currently registered for user_id.

        Connections that fail or stall past `send_timeout` are dropped.

        Returns:
            Number of connections the event was written to
        """
        key = str(user_id)
        connections = list(self._user_connections.get(key, ()))

        if not connections:
            logger.debug(f"No live connections for user {key}; push skipped")
            return 0

        delivered = 0
        for websocket in connections:
            try:
                await self._send_to_socket(websocket, event)
                delivered += 1
            except DeliveryBestEffortFailure as e:
                logger.warning(f"Dropping websocket for user {key}: {e}")
                self.disconnect(websocket)

        return delivered

    def push(self, user_id: Any, event: RealtimeEvent) -> None:
        """
        Fire-and-forget delivery.

        Schedules the send and returns immediately; the caller never
        waits on sockets and never sees a delivery error.
        """
        if self.backend == "redis":
            coro = self._publish(str(user_id), event)
        else:
            coro = self.send(user_id, event)

        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._push_done)

    def _push_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Realtime push failed: {exc}")

    async def drain(self) -> None:
        """Wait for in-flight pushes. Used at shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _send_to_socket(self, websocket: WebSocket, event: RealtimeEvent) -> None:
        """Send one frame, bounded by send_timeout."""
        try:
            await asyncio.wait_for(
                websocket.send_text(event.to_json()),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DeliveryBestEffortFailure("send timed out") from e
        except Exception as e:
            raise DeliveryBestEffortFailure(str(e)) from e

    # ============================================================
    # Redis Pub/Sub
    # ============================================================

    async def _publish(self, user_id: str, event: RealtimeEvent) -> None:
        """Publish for every process; deliver locally if Redis is down."""
        channel = f"{CHANNEL_PREFIX}{user_id}"
        try:
            redis: Redis = await self._redis_factory()
            await redis.publish(channel, event.to_json())
            logger.debug(f"Published event to Redis channel {channel}")
        except Exception as e:
            logger.error(f"Failed to publish to Redis: {e}")
            await self.send(user_id, event)

    async def _ensure_redis_subscriber(self) -> None:
        """Ensure Redis subscriber is running."""
        if self._redis_subscriber_task is None or self._redis_subscriber_task.done():
            self._redis_subscriber_task = asyncio.create_task(
                self._redis_subscriber_loop()
            )
            logger.info("Started Redis Pub/Sub subscriber task")

    async def _redis_subscriber_loop(self) -> None:
        """
        Background task that receives published events and delivers them
        to the sockets held by this process.
        """
        try:
            redis: Redis = await self._redis_factory()
            pubsub = redis.pubsub()

            await pubsub.psubscribe(f"{CHANNEL_PREFIX}*")
            logger.info(f"Subscribed to Redis pattern: {CHANNEL_PREFIX}*")

            async for message in pubsub.listen():
                if message["type"] != "pmessage":
                    continue
                try:
                    channel = message["channel"]
                    if isinstance(channel, bytes):
                        channel = channel.decode("utf-8")
                    user_id = channel[len(CHANNEL_PREFIX):]

                    data = message["data"]
                    if isinstance(data, bytes):
                        data = data.decode("utf-8")

                    await self.send(user_id, RealtimeEvent.from_json(data))
                except Exception as e:
                    logger.error(f"Error processing Redis message: {e}")

        except asyncio.CancelledError:
            logger.info("Redis subscriber task cancelled")
            raise
        except Exception as e:
            logger.error(f"Redis subscriber error: {e}")
            # Wait before retrying
            await asyncio.sleep(5)
            self._redis_subscriber_task = None
            await self._ensure_redis_subscriber()

    # ============================================================
    # Shutdown
    # ============================================================

    async def shutdown(self) -> None:
        """Gracefully shutdown the connection manager."""
        if self._redis_subscriber_task:
            self._redis_subscriber_task.cancel()
            try:
                await self._redis_subscriber_task
            except asyncio.CancelledError:
                pass
            self._redis_subscriber_task = None

        await self.drain()

        # Close all WebSocket connections
        for websocket in list(self._connection_info.keys()):
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing websocket during shutdown: {e}")

        self._user_connections.clear()
        self._connection_info.clear()

        logger.info("WebSocket ConnectionManager shutdown complete")


def build_connection_manager() -> ConnectionManager:
    """Construct the process-wide manager from settings."""
    return ConnectionManager(
        backend=settings.REALTIME_BACKEND,
        send_timeout=settings.REALTIME_SEND_TIMEOUT_SECONDS,
    )


def notification_event(
    notification_type: str,
    message: str,
    sender_id: UUID,
    sender_name: str,
    sender_avatar: str,
    post_id: Optional[UUID] = None,
) -> RealtimeEvent:
    """Wire event for a freshly persisted notification."""
    payload: Dict[str, Any] = {
        "type": notification_type,
        "message": message,
        "sender": {
            "id": str(sender_id),
            "name": sender_name,
            "avatar": sender_avatar,
        },
    }
    if post_id is not None:
        payload["postId"] = str(post_id)
    return RealtimeEvent(type=EventTypes.NOTIFICATION, payload=payload)
