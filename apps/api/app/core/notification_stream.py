"""
SSE connection registry for real-time notification counts.

Each open /api/notifications/stream request registers an asyncio.Queue
under its user id. Publishing puts a message on every queue for that user,
so the stream generator can forward it as an SSE event.

Publishing is thread-safe: sync route handlers run in the threadpool and
hand messages to the owning event loop with call_soon_threadsafe.

The registry is per-process and in memory; it does not fan out across
multiple server instances.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Set
from uuid import UUID

logger = logging.getLogger(__name__)

# Bounded so a stalled client cannot grow memory without limit
MAX_QUEUED_MESSAGES = 100


@dataclass(eq=False)
class StreamConnection:
    """One open SSE stream."""
    user_id: UUID
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=MAX_QUEUED_MESSAGES))


class NotificationStreamManager:
    """Manages SSE stream queues per user."""

    def __init__(self):
        # user_id -> set of open stream connections
        self._connections: Dict[UUID, Set[StreamConnection]] = {}
        self._lock = threading.Lock()

    def connect(self, user_id: UUID) -> StreamConnection:
        """Register a new stream for the user. Must be called from the event loop."""
        connection = StreamConnection(user_id=user_id, loop=asyncio.get_running_loop())
        with self._lock:
            self._connections.setdefault(user_id, set()).add(connection)
        logger.debug("SSE stream opened", extra={"user_id": str(user_id)})
        return connection

    def disconnect(self, connection: StreamConnection) -> None:
        """Remove a stream connection."""
        with self._lock:
            connections = self._connections.get(connection.user_id)
            if connections is None:
                return
            connections.discard(connection)
            if not connections:
                del self._connections[connection.user_id]
        logger.debug("SSE stream closed", extra={"user_id": str(connection.user_id)})

    def publish(self, user_id: UUID, message: dict[str, Any]) -> int:
        """
        Send a message to every open stream of a user.

        Safe to call from sync code running in worker threads.
        Returns the number of streams the message was handed to.
        """
        with self._lock:
            connections = list(self._connections.get(user_id, ()))

        delivered = 0
        for connection in connections:
            try:
                connection.loop.call_soon_threadsafe(_offer, connection.queue, message)
                delivered += 1
            except RuntimeError:
                # Event loop already closed; the stream is gone
                self.disconnect(connection)
        return delivered

    def get_connected_count(self, user_id: UUID) -> int:
        """Get the number of open streams for a user."""
        with self._lock:
            return len(self._connections.get(user_id, ()))

    def get_total_connections(self) -> int:
        """Get total number of open streams across all users."""
        with self._lock:
            return sum(len(conns) for conns in self._connections.values())


def _offer(queue: asyncio.Queue, message: dict[str, Any]) -> None:
    """Enqueue, dropping the oldest message when the client is behind."""
    if queue.full():
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
    queue.put_nowait(message)


# Singleton instance
stream_manager = NotificationStreamManager()
