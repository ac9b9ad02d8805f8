"""Room registry: which connections are in which rooms.

The registry is the single authority on room membership. Nothing else
reads or writes member sets; every mutation goes through join / leave /
disconnect, each serialized by the room's own lock.

Invariants:
    - A room has an entry iff its member set is non-empty.
    - A connection appears at most once in a room's member set.
    - A connection may be a member of several rooms at once; joining a
      room never leaves another one.
    - disconnect() removes a connection from all of its rooms exactly once.

Thread Safety:
    Designed for a single asyncio event loop. Locks are per room, so
    operations on different rooms never wait for each other.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Set

from .base import RoomDirectory
from .errors import RoomFull, RoomInactive, RoomNotFound
from .locks import KeyedLock
from .presence import PresenceNotifier

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Process-local membership map with one serialization domain per room.

    Attributes:
        _members: room_id -> member connection ids (dict keeps join order).
        _memberships: connection_id -> room ids, for every live connection.
    """

    def __init__(self, rooms: RoomDirectory, notifier: PresenceNotifier) -> None:
        self._rooms = rooms
        self._notifier = notifier
        self._members: Dict[str, Dict[str, None]] = {}
        self._memberships: Dict[str, Set[str]] = {}
        self._locks = KeyedLock(keep=lambda room_id: room_id in self._members)

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def connect(self, connection_id: str) -> None:
        """Track a newly authenticated connection (no rooms yet)."""
        self._memberships.setdefault(connection_id, set())

    async def disconnect(self, connection_id: str) -> List[str]:
        """Remove a connection from every room it is in.

        Called on transport disconnect; no explicit leave is needed first.
        A second call for the same connection is a no-op.

        Returns:
            The room ids the connection was removed from.
        """
        rooms = self._memberships.pop(connection_id, None)
        if rooms is None:
            return []

        left = []
        for room_id in list(rooms):
            async with self._locks.hold(room_id):
                if self._remove(room_id, connection_id):
                    left.append(room_id)
        logger.info(
            f"[Registry] Connection {connection_id} disconnected, left rooms {left}"
        )
        return left

    # =========================================================================
    # Membership
    # =========================================================================

    async def join(self, room_id: str, connection_id: str) -> List[str]:
        """Admit a connection to a room.

        On first admission the other members get ``user_joined``. The caller
        always gets ``online_users`` with the resulting snapshot; joining a
        room twice changes nothing else.

        Raises:
            RoomNotFound: The room does not exist.
            RoomInactive: The room was deleted.
            RoomFull: The room already holds max_participants members.

        Returns:
            Member connection ids after the join.
        """
        info = await asyncio.to_thread(self._rooms.get_room_info, room_id)
        if info is None:
            raise RoomNotFound()
        if not info.is_active:
            raise RoomInactive()

        async with self._locks.hold(room_id):
            rooms = self._memberships.get(connection_id)
            if rooms is None:
                # Disconnected while the room lookup was in flight.
                return []

            members = self._members.get(room_id, {})
            if connection_id in members:
                snapshot = list(members)
                self._notifier.online_users(room_id, connection_id, snapshot)
                return snapshot

            if len(members) >= info.max_participants:
                raise RoomFull()

            peers = list(members)
            members[connection_id] = None
            self._members[room_id] = members
            rooms.add(room_id)

            snapshot = list(members)
            self._notifier.member_joined(room_id, connection_id, peers)
            self._notifier.online_users(room_id, connection_id, snapshot)

        logger.info(
            f"[Registry] Connection {connection_id} joined room {room_id} "
            f"({len(snapshot)} online)"
        )
        return snapshot

    async def leave(self, room_id: str, connection_id: str) -> bool:
        """Remove a connection from a room.

        Not being a member is not an error: nothing changes and nothing is
        emitted.

        Returns:
            True if the connection was removed.
        """
        async with self._locks.hold(room_id):
            removed = self._remove(room_id, connection_id)
        if removed:
            logger.info(f"[Registry] Connection {connection_id} left room {room_id}")
        return removed

    async def online_users(self, room_id: str, connection_id: str) -> List[str]:
        """Send the room's member snapshot to one connection."""
        async with self._locks.hold(room_id):
            snapshot = self.snapshot(room_id)
            self._notifier.online_users(room_id, connection_id, snapshot)
        return snapshot

    @asynccontextmanager
    async def hold(self, room_id: str) -> AsyncIterator[List[str]]:
        """Hold the room's lock and yield its member snapshot.

        Used to deliver an event to exactly the members present at the
        moment of delivery, ordered with membership events.
        """
        async with self._locks.hold(room_id):
            yield self.snapshot(room_id)

    def _remove(self, room_id: str, connection_id: str) -> bool:
        """Remove a member. Caller must hold the room's lock."""
        members = self._members.get(room_id)
        if not members or connection_id not in members:
            return False

        del members[connection_id]
        rooms = self._memberships.get(connection_id)
        if rooms is not None:
            rooms.discard(room_id)

        if members:
            self._notifier.member_left(room_id, connection_id, list(members))
        else:
            del self._members[room_id]
            logger.debug(f"[Registry] Room {room_id} is empty, entry removed")
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def snapshot(self, room_id: str) -> List[str]:
        """Member connection ids of a room; empty if the room has no entry."""
        return list(self._members.get(room_id, ()))

    def rooms_of(self, connection_id: str) -> List[str]:
        return sorted(self._memberships.get(connection_id, ()))

    def has_room(self, room_id: str) -> bool:
        return room_id in self._members

    def room_count(self) -> int:
        return len(self._members)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._memberships
