"""Handshake authentication for realtime connections."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from .base import CredentialDirectory
from .errors import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedConnection:
    """Proof that a handshake presented a known anonymous credential."""
    anonymous_id: str


class ConnectionGateway:
    """Admits connections whose anonymous credential exists.

    Authentication happens before the WebSocket is accepted, so an
    unauthenticated client never reaches the room registry.
    """

    def __init__(self, credentials: CredentialDirectory) -> None:
        self._credentials = credentials

    async def authenticate(self, credential: Optional[str]) -> AuthenticatedConnection:
        """Validate a handshake credential.

        Args:
            credential: The anonymous id sent by the client, if any.

        Raises:
            Unauthenticated: The credential is missing or unknown.
        """
        anonymous_id = (credential or "").strip()
        if not anonymous_id:
            raise Unauthenticated("Authentication error: Anonymous ID required")

        if not await asyncio.to_thread(self._credentials.user_exists, anonymous_id):
            logger.warning(f"[Gateway] Rejected unknown anonymous id {anonymous_id}")
            raise Unauthenticated("Authentication error: Invalid user")

        return AuthenticatedConnection(anonymous_id=anonymous_id)
