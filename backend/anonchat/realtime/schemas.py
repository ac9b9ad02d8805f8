"""Inbound WebSocket command schemas.

Clients send JSON frames with a ``type`` field:

    join_room, leave_room, get_online_users:
        {"type": ..., "roomId": "<room id>"}
    send_message:
        {"type": "send_message", "roomId", "content",
         "anonymousId"?, "userColor"?, "timestamp"?}

Unknown keys are ignored. ``anonymousId`` and ``timestamp`` are accepted
for compatibility with existing clients but never trusted: the sender is
the authenticated connection and the timestamp comes from the store.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CommandType(str, Enum):
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    GET_ONLINE_USERS = "get_online_users"
    SEND_MESSAGE = "send_message"


class RoomCommand(BaseModel):
    """Payload of join_room, leave_room and get_online_users."""
    roomId: str = Field(..., min_length=1, description="Target room ID")


class SendMessageCommand(BaseModel):
    """Payload of send_message."""
    roomId: str = Field(..., min_length=1, description="Target room ID")
    content: Optional[str] = Field(None, description="Message text")
    userColor: Optional[str] = Field(None, description="Sender's display color")
    anonymousId: Optional[str] = Field(None, description="Ignored; sender is the connection")
    timestamp: Optional[Any] = Field(None, description="Ignored client clock")
