"""Wiring of the realtime components.

ChatEngine builds the component graph once and owns it:

    Broadcaster <- PresenceNotifier <- RoomRegistry <- MessagePipeline
    ConnectionGateway

The WebSocket router reaches the engine through get_engine(); tests swap in
their own with set_engine() / reset_engine().
"""
import logging
from typing import Optional

from anonchat.config import get_config
from anonchat.store.service import get_store

from .base import CredentialDirectory, MessageStore, RoomDirectory
from .broadcaster import Broadcaster
from .connection import DEFAULT_OUTBOX_LIMIT, Connection
from .gateway import ConnectionGateway
from .pipeline import DEFAULT_MAX_MESSAGE_LENGTH, MessagePipeline
from .presence import PresenceNotifier
from .registry import RoomRegistry

logger = logging.getLogger(__name__)


class ChatEngine:
    """The realtime presence and broadcast engine of one process."""

    def __init__(
        self,
        credentials: CredentialDirectory,
        rooms: RoomDirectory,
        messages: MessageStore,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        outbox_limit: int = DEFAULT_OUTBOX_LIMIT,
    ) -> None:
        self.outbox_limit = outbox_limit
        self.broadcaster = Broadcaster()
        self.notifier = PresenceNotifier(self.broadcaster)
        self.registry = RoomRegistry(rooms, self.notifier)
        self.gateway = ConnectionGateway(credentials)
        self.pipeline = MessagePipeline(
            rooms,
            messages,
            self.registry,
            self.broadcaster,
            max_message_length=max_message_length,
        )

    def attach(self, connection: Connection) -> None:
        """Make an accepted connection reachable and start its writer."""
        self.broadcaster.register(connection)
        self.registry.connect(connection.id)
        connection.start()
        logger.info(
            f"[Engine] Connection {connection.id} attached "
            f"(anonymousId={connection.anonymous_id}, total={len(self.broadcaster)})"
        )

    async def detach(self, connection: Connection) -> None:
        """Tear a connection down: stop delivery, then leave every room."""
        connection.close()
        self.broadcaster.unregister(connection.id)
        await self.registry.disconnect(connection.id)


_engine: Optional[ChatEngine] = None


def get_engine() -> ChatEngine:
    """Return the process-wide engine, building it from the store on first use."""
    global _engine
    if _engine is None:
        config = get_config()
        store = get_store()
        _engine = ChatEngine(
            credentials=store,
            rooms=store,
            messages=store,
            max_message_length=config.realtime.max_message_length,
            outbox_limit=config.realtime.outbox_limit,
        )
    return _engine


def set_engine(engine: Optional[ChatEngine]) -> None:
    global _engine
    _engine = engine


def reset_engine() -> None:
    set_engine(None)
