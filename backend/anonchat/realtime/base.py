"""Collaborator interfaces consumed by the realtime engine.

The engine never talks to a database directly. It is handed three
collaborators at construction time:

    CredentialDirectory: does an anonymous credential exist?
    RoomDirectory:       what do we know about a room (active? cap?)
    MessageStore:        durably append a message, get the canonical record

The methods are synchronous (DuckDB is a blocking driver); the engine calls
them through ``asyncio.to_thread`` so a slow store never stalls the event loop.

Usage:
    from anonchat.store.service import ChatStore

    store = ChatStore(db_path=":memory:")
    if store.user_exists("user_abc123xyz"):
        info = store.get_room_info(room_id)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from anonchat.store.schemas import StoredMessage


@dataclass(frozen=True)
class RoomInfo:
    """What the realtime engine needs to know about a room.

    Attributes:
        room_id: The room identifier.
        is_active: False once the room has been deleted.
        max_participants: Maximum number of simultaneous members.
    """
    room_id: str
    is_active: bool
    max_participants: int


class CredentialDirectory(ABC):
    """Validates anonymous credentials."""

    @abstractmethod
    def user_exists(self, anonymous_id: str) -> bool:
        """Return True if the anonymous id was issued by this server."""
        pass


class RoomDirectory(ABC):
    """Resolves room ids to membership eligibility."""

    @abstractmethod
    def get_room_info(self, room_id: str) -> Optional[RoomInfo]:
        """Return the room's RoomInfo, or None if no such room exists."""
        pass


class MessageStore(ABC):
    """Durable, append-only message storage."""

    @abstractmethod
    def append_message(
        self,
        room_id: str,
        anonymous_id: str,
        user_color: str,
        content: str,
    ) -> StoredMessage:
        """Persist a message and return the canonical stored record.

        The store assigns the message id and timestamp.

        Raises:
            Exception: Any storage failure. The caller converts it into a
                PersistenceFailure for the sender.
        """
        pass
