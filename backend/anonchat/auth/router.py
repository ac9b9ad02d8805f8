"""Auth router for anonymous identities.

Endpoints:
    POST /api/auth/anonymous - Issue a new anonymous id and display color

The returned anonymousId is the credential a client presents when opening
the chat WebSocket (/ws/chat?anonymousId=...).
"""
import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from anonchat.store.service import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class AnonymousUserResponse(BaseModel):
    """Response body for a newly issued anonymous identity."""
    anonymousId: str
    color: str


@router.post("/anonymous", response_model=AnonymousUserResponse)
def create_anonymous_user() -> AnonymousUserResponse:
    """Create an anonymous user with a random display color."""
    try:
        user = get_store().create_user()
    except Exception as e:
        logger.error(f"Error creating anonymous user: {e}")
        raise HTTPException(status_code=500, detail="Error creating anonymous user")
    return AnonymousUserResponse(anonymousId=user.anonymousId, color=user.color)
