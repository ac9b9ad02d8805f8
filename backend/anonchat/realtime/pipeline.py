"""Message pipeline: validate, persist, then broadcast.

A chat message goes through these steps, in order:

    1. Validation   content is trimmed; empty or oversize content is rejected
    2. Room check   the room must exist and be active
    3. Persistence  the store assigns the canonical id and timestamp
    4. Broadcast    ``receive_message`` built from the stored record only,
                    delivered to the room's members at that moment

A failure at any step stops the pipeline: nothing is stored after a failed
validation and nothing is broadcast after a failed write. The client's own
timestamp is never stored or echoed.

Ordering:
    Messages of one room are persisted and broadcast under a per-room
    ordering lock, so members receive them in persistence order. That lock
    is separate from the registry's membership lock; joins and leaves of
    the same room only wait for the final enqueue, never for the database.
"""
import asyncio
import logging
from typing import Any, Optional

from anonchat.store.schemas import DEFAULT_USER_COLOR, StoredMessage

from .base import MessageStore, RoomDirectory
from .broadcaster import Broadcaster
from .errors import (
    MessageValidationError,
    PersistenceFailure,
    RoomInactive,
    RoomNotFound,
)
from .locks import KeyedLock
from .registry import RoomRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 2000


def build_message_event(record: StoredMessage) -> dict:
    """The ``receive_message`` event for a stored record."""
    return {"type": "receive_message", **record.model_dump(mode="json")}


class MessagePipeline:
    def __init__(
        self,
        rooms: RoomDirectory,
        store: MessageStore,
        registry: RoomRegistry,
        broadcaster: Broadcaster,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self._rooms = rooms
        self._store = store
        self._registry = registry
        self._broadcaster = broadcaster
        self._max_message_length = max_message_length
        self._ordering = KeyedLock()

    def validate(self, content: Optional[str]) -> str:
        """Return the trimmed content or raise MessageValidationError."""
        text = (content or "").strip()
        if not text:
            raise MessageValidationError("Message content is required")
        if len(text) > self._max_message_length:
            raise MessageValidationError(
                f"Message exceeds {self._max_message_length} characters"
            )
        return text

    async def send(
        self,
        room_id: str,
        anonymous_id: str,
        user_color: Optional[str],
        content: Optional[str],
        client_timestamp: Optional[Any] = None,
    ) -> StoredMessage:
        """Persist a message and broadcast the canonical record to the room.

        Args:
            room_id: Target room.
            anonymous_id: Sender's authenticated anonymous id.
            user_color: Sender's display color (defaults to black).
            content: Raw message text.
            client_timestamp: Client's clock at send time. Ignored.

        Raises:
            MessageValidationError: Empty or oversize content.
            RoomNotFound: Missing room (RoomInactive for a deleted one).
            PersistenceFailure: The store could not save the message.

        Returns:
            The stored record that was broadcast.
        """
        text = self.validate(content)

        info = await asyncio.to_thread(self._rooms.get_room_info, room_id)
        if info is None:
            raise RoomNotFound()
        if not info.is_active:
            raise RoomInactive()

        if client_timestamp is not None:
            logger.debug("[Pipeline] Discarding client timestamp %r", client_timestamp)

        async with self._ordering.hold(room_id):
            try:
                record = await asyncio.to_thread(
                    self._store.append_message,
                    room_id,
                    anonymous_id,
                    user_color or DEFAULT_USER_COLOR,
                    text,
                )
            except Exception as exc:
                logger.error(
                    f"[Pipeline] Failed to persist message for room {room_id}: {exc}"
                )
                raise PersistenceFailure() from exc

            event = build_message_event(record)
            async with self._registry.hold(room_id) as members:
                delivered = self._broadcaster.deliver(members, event)

        logger.info(
            f"[Pipeline] Message {record.id} from {anonymous_id} "
            f"delivered to {delivered} connection(s) in room {room_id}"
        )
        return record
