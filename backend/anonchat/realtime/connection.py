"""A live client connection and its outbound event queue.

Events are never written to the WebSocket by the code that produces them.
They are appended to the connection's queue (a synchronous, non-blocking
operation) and a single writer task per connection drains the queue in
order. This keeps broadcasting cheap enough to do while a room lock is held,
which is what gives every member of a room the same event order.

The queue is bounded. A client that stops reading until the queue is full
is dropped: delivery stops and the socket is closed with 1013 (Try Again
Later), after which the endpoint's receive loop ends and cleanup runs.
"""
import asyncio
import logging
import uuid
from typing import Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

DEFAULT_OUTBOX_LIMIT = 256

# Close code sent to a client that fell too far behind.
SLOW_CONSUMER_CLOSE_CODE = 1013


class Connection:
    """One authenticated client session.

    Attributes:
        id: Server-generated connection id (also the presence "userId").
        anonymous_id: The credential the connection authenticated with.
        websocket: Underlying transport.
    """

    def __init__(
        self,
        websocket: WebSocket,
        anonymous_id: str,
        connection_id: Optional[str] = None,
        outbox_limit: int = DEFAULT_OUTBOX_LIMIT,
    ) -> None:
        self.id = connection_id or str(uuid.uuid4())
        self.anonymous_id = anonymous_id
        self.websocket = websocket
        self._outbox: "asyncio.Queue[dict]" = asyncio.Queue(maxsize=outbox_limit)
        self._writer: Optional[asyncio.Task] = None
        self._closer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the writer task. Must be called from the event loop."""
        if self._writer is None:
            self._writer = asyncio.create_task(
                self._drain(), name=f"ws-writer-{self.id}"
            )

    def enqueue(self, event: dict) -> bool:
        """Queue an event for delivery.

        Must be called from the event loop.

        Returns:
            False if the connection is closed, or was just closed because
            its queue is full, and the event was dropped.
        """
        if self._closed:
            return False
        try:
            self._outbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                f"Connection {self.id} has {self._outbox.qsize()} undelivered "
                f"events, dropping it"
            )
            self.close()
            self._closer = asyncio.create_task(
                self._close_transport(), name=f"ws-closer-{self.id}"
            )
            return False
        return True

    async def _drain(self) -> None:
        while True:
            event = await self._outbox.get()
            try:
                await self.websocket.send_json(event)
            except Exception as e:
                logger.debug(f"Failed to send to connection {self.id}: {e}")
                self._closed = True
                return

    async def _close_transport(self) -> None:
        try:
            await self.websocket.close(
                code=SLOW_CONSUMER_CLOSE_CODE, reason="Too many undelivered events"
            )
        except Exception as e:
            logger.debug(f"Failed to close connection {self.id}: {e}")

    def close(self) -> None:
        """Stop delivering. Queued events that were not yet sent are dropped."""
        self._closed = True
        writer, self._writer = self._writer, None
        if writer is not None and not writer.done():
            writer.cancel()

    def pending(self) -> int:
        """Number of queued events not yet handed to the writer.

        Introspection only; nothing in the delivery path reads it.
        """
        return self._outbox.qsize()
