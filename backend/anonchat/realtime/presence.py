"""Presence events derived from room membership changes.

The notifier keeps no state. The RoomRegistry calls it while holding the
room's lock, passing the member lists it just computed, so presence events
are ordered with every other event of the same room.

Events:
    user_joined:  {roomId, userId}   to the members that were already there
    user_left:    {roomId, userId}   to the members that remain
    online_users: {roomId, users}    to one connection, on join or on request
"""
from typing import List

from .broadcaster import Broadcaster


class PresenceNotifier:
    def __init__(self, broadcaster: Broadcaster) -> None:
        self._broadcaster = broadcaster

    def member_joined(self, room_id: str, connection_id: str, peers: List[str]) -> int:
        if not peers:
            return 0
        return self._broadcaster.deliver(
            peers,
            {"type": "user_joined", "roomId": room_id, "userId": connection_id},
        )

    def member_left(self, room_id: str, connection_id: str, remaining: List[str]) -> int:
        if not remaining:
            return 0
        return self._broadcaster.deliver(
            remaining,
            {"type": "user_left", "roomId": room_id, "userId": connection_id},
        )

    def online_users(self, room_id: str, connection_id: str, members: List[str]) -> bool:
        return self._broadcaster.send(
            connection_id,
            {"type": "online_users", "roomId": room_id, "users": list(members)},
        )
