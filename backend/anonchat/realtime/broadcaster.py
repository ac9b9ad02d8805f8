"""Event delivery to connected clients.

The Broadcaster is the only component that can reach a connection's
outbox. It is created once per engine and handed explicitly to the
components that emit events (PresenceNotifier and MessagePipeline).
"""
import logging
from typing import Dict, Iterable, Optional

from .connection import Connection

logger = logging.getLogger(__name__)


class Broadcaster:
    """Maps connection ids to live connections and queues events for them.

    Delivery is synchronous: each call enqueues the event on every target
    connection before returning, so callers can deliver while holding a
    room lock without awaiting the network.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def register(self, connection: Connection) -> None:
        self._connections[connection.id] = connection

    def unregister(self, connection_id: str) -> Optional[Connection]:
        return self._connections.pop(connection_id, None)

    def is_registered(self, connection_id: str) -> bool:
        """Introspection only; delivery goes through send()."""
        return connection_id in self._connections

    def send(self, connection_id: str, event: dict) -> bool:
        """Queue an event for a single connection.

        Returns:
            True if the event was queued.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        return connection.enqueue(event)

    def deliver(self, connection_ids: Iterable[str], event: dict) -> int:
        """Queue the same event for every listed connection.

        Args:
            connection_ids: Recipients (normally a room's member snapshot).
            event: JSON-serializable event.

        Returns:
            Number of connections the event was queued for.
        """
        delivered = 0
        for connection_id in connection_ids:
            if self.send(connection_id, event):
                delivered += 1
        logger.debug(
            "Delivered %s to %d connection(s)", event.get("type", "?"), delivered
        )
        return delivered

    def __len__(self) -> int:
        return len(self._connections)
