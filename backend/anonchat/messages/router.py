"""Message REST API router.

Endpoints:
    GET    /api/messages              - Latest messages across rooms (newest first)
    DELETE /api/messages/{message_id} - Delete one message
"""
from typing import List

from fastapi import APIRouter, HTTPException

from anonchat.config import get_config
from anonchat.store.schemas import StoredMessage
from anonchat.store.service import get_store

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=List[StoredMessage])
def list_messages() -> List[StoredMessage]:
    limit = get_config().realtime.history_limit
    return get_store().get_recent_messages(limit=limit)


@router.delete("/{message_id}")
def delete_message(message_id: str) -> dict:
    if not get_store().delete_message(message_id):
        raise HTTPException(status_code=404, detail="Message not found")
    return {"message": "Message deleted successfully"}
