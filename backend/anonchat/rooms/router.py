"""Room REST API router.

Endpoints:
    GET    /api/rooms                  - List active rooms (newest first)
    POST   /api/rooms                  - Create a room
    GET    /api/rooms/{room_id}        - Get one room
    DELETE /api/rooms/{room_id}        - Deactivate a room and delete its messages
    GET    /api/rooms/{room_id}/messages - Room messages (oldest first)

Deleted rooms stay in the database with isActive=false; the realtime
engine reports them as "Room not found".
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from anonchat.config import get_config
from anonchat.store.schemas import Room, RoomCreate, StoredMessage
from anonchat.store.service import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])

# Owner value written by older clients that had no identity yet.
LEGACY_OWNER = "unknown_user"


class DeleteRoomResponse(BaseModel):
    message: str
    deletedRoom: Room


def _can_modify(room: Room, anonymous_id: Optional[str]) -> bool:
    if not room.createdBy or room.createdBy == LEGACY_OWNER:
        return True
    return anonymous_id == room.createdBy


@router.get("", response_model=List[Room])
def list_rooms() -> List[Room]:
    return get_store().list_active_rooms()


@router.post("", response_model=Room, status_code=201)
def create_room(request: RoomCreate) -> Room:
    """Create a room. maxParticipants defaults to the configured cap."""
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Room name is required")
    return get_store().create_room(request)


@router.get("/{room_id}", response_model=Room)
def get_room(room_id: str) -> Room:
    room = get_store().get_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.delete("/{room_id}", response_model=DeleteRoomResponse)
def delete_room(
    room_id: str,
    anonymousId: Optional[str] = Query(None, description="Caller's anonymous id"),
) -> DeleteRoomResponse:
    """Deactivate a room.

    Rooms with an owner can only be deleted by that owner. Rooms without
    one (or owned by the legacy "unknown_user") can be deleted by anyone.
    """
    store = get_store()
    room = store.get_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    if not _can_modify(room, anonymousId):
        raise HTTPException(
            status_code=403, detail="You can only modify rooms that you created"
        )

    deleted = store.deactivate_room(room_id)
    if deleted is None:
        raise HTTPException(status_code=404, detail="Room not found")
    logger.info(f"Room {room_id} deleted by {anonymousId or 'anonymous caller'}")
    return DeleteRoomResponse(message="Room deleted successfully", deletedRoom=deleted)


@router.get("/{room_id}/messages", response_model=List[StoredMessage])
def get_room_messages(room_id: str) -> List[StoredMessage]:
    """Most recent history of a room, oldest first."""
    limit = get_config().realtime.history_limit
    return get_store().get_room_messages(room_id, limit=limit)
