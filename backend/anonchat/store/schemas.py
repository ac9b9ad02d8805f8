"""Pydantic schemas for the chat store.

This module defines the records persisted in DuckDB:
- AnonymousUser: a generated anonymous identity with its display color
- Room: a chat room (soft-deleted by clearing is_active)
- StoredMessage: the canonical, persisted version of a chat message

Field names are camelCase because these records are serialized straight to
the browser client, over HTTP and over the WebSocket. Datetimes are naive UTC
in DuckDB and are written to JSON with a trailing ``Z``.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

DEFAULT_USER_COLOR = "#000000"


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the DuckDB TIMESTAMP column type."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_iso(value: datetime) -> str:
    """ISO 8601 with a trailing Z. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class AnonymousUser(BaseModel):
    """An anonymous chat identity.

    Attributes:
        anonymousId: Credential presented by the client when connecting.
        color: Color used to render the user's messages.
        joinedAt: When the identity was created (UTC).
    """
    anonymousId: str = Field(..., description="Anonymous credential")
    color: str = Field(default=DEFAULT_USER_COLOR, description="Display color")
    joinedAt: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")

    @field_serializer("joinedAt", when_used="json")
    def _serialize_joined_at(self, value: datetime) -> str:
        return to_utc_iso(value)


class RoomCreate(BaseModel):
    """Input schema for creating a room."""
    name: str = Field(..., min_length=1, description="Room name")
    description: Optional[str] = Field(None, description="Optional description")
    maxParticipants: Optional[int] = Field(None, ge=1, description="Participant cap")
    createdBy: Optional[str] = Field(None, description="Anonymous id of the creator")


class Room(BaseModel):
    """A chat room.

    Rooms are never hard-deleted; deleting one clears isActive, which makes
    the realtime layer treat it as not found.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Room ID")
    name: str = Field(..., description="Room name")
    description: Optional[str] = Field(None, description="Optional description")
    maxParticipants: int = Field(default=50, description="Participant cap")
    isActive: bool = Field(default=True, description="False once deleted")
    createdAt: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")
    createdBy: Optional[str] = Field(None, description="Anonymous id of the creator")

    @field_serializer("createdAt", when_used="json")
    def _serialize_created_at(self, value: datetime) -> str:
        return to_utc_iso(value)


class StoredMessage(BaseModel):
    """The canonical record of a chat message.

    id and timestamp are assigned by the store. This record, never the
    client-submitted payload, is what gets broadcast.
    """
    id: str = Field(..., description="Server-assigned message ID")
    roomId: str = Field(..., description="Room the message belongs to")
    anonymousId: str = Field(..., description="Sender's anonymous id")
    userColor: str = Field(default=DEFAULT_USER_COLOR, description="Sender's color")
    content: str = Field(..., description="Trimmed message text")
    timestamp: datetime = Field(..., description="Server-assigned time (UTC)")

    @field_serializer("timestamp", when_used="json")
    def _serialize_timestamp(self, value: datetime) -> str:
        return to_utc_iso(value)
