"""Errors raised by the realtime engine.

Every ChatError carries the client-facing ``message``. The WebSocket
dispatcher turns it into an ``error`` event sent to the originating
connection only; nothing here is ever broadcast.
"""


class ChatError(Exception):
    """Base class for rejected realtime commands."""

    message = "Request failed"

    def __init__(self, message: str = "") -> None:
        if message:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(ChatError):
    """Handshake rejected: credential missing or unknown."""
    message = "Authentication error: Invalid user"


class RoomNotFound(ChatError):
    message = "Room not found"


class RoomInactive(RoomNotFound):
    """The room exists but has been deleted. Reported like a missing room."""


class RoomFull(ChatError):
    message = "Room is full"


class MessageValidationError(ChatError):
    message = "Message content is required"


class PersistenceFailure(ChatError):
    message = "Failed to send message"


class InternalError(ChatError):
    message = "Internal server error"
