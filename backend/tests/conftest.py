"""Shared test fixtures and fakes for backend tests."""
import threading
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from anonchat.config import AppSettings, DatabaseSettings, reset_config, set_config
from anonchat.realtime.base import (
    CredentialDirectory,
    MessageStore,
    RoomDirectory,
    RoomInfo,
)
from anonchat.realtime.broadcaster import Broadcaster
from anonchat.realtime.engine import reset_engine
from anonchat.store.schemas import StoredMessage, utc_now
from anonchat.store.service import ChatStore, get_store


@pytest.fixture(autouse=True)
def memory_store():
    """Run every test against a fresh in-memory DuckDB store and engine."""
    set_config(AppSettings(database=DatabaseSettings(path=":memory:")))
    ChatStore.reset_instance()
    reset_engine()
    store = get_store()
    yield store
    reset_engine()
    ChatStore.reset_instance()
    reset_config()


@pytest.fixture
def api_client():
    """TestClient for the main app, run as a context manager.

    Entering the client starts the lifespan and gives every WebSocket
    session one shared event loop, which the realtime engine needs.
    """
    from anonchat.main import app

    with TestClient(app) as client:
        yield client


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeDirectory(CredentialDirectory, RoomDirectory):
    """In-memory users and rooms."""

    def __init__(self) -> None:
        self.users = set()
        self.rooms: Dict[str, RoomInfo] = {}

    def add_room(self, room_id: str, is_active: bool = True, max_participants: int = 50) -> None:
        self.rooms[room_id] = RoomInfo(room_id, is_active, max_participants)

    def user_exists(self, anonymous_id: str) -> bool:
        return anonymous_id in self.users

    def get_room_info(self, room_id: str) -> Optional[RoomInfo]:
        return self.rooms.get(room_id)


class FakeMessageStore(MessageStore):
    """Appends to a list; can be made to fail or to block per room."""

    def __init__(self) -> None:
        self.records: List[StoredMessage] = []
        self.fail = False
        self.gates: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def append_message(self, room_id, anonymous_id, user_color, content) -> StoredMessage:
        gate = self.gates.get(room_id)
        if gate is not None:
            gate.wait(timeout=5)
        if self.fail:
            raise RuntimeError("disk full")
        with self._lock:
            record = StoredMessage(
                id=f"m{len(self.records) + 1}",
                roomId=room_id,
                anonymousId=anonymous_id,
                userColor=user_color,
                content=content,
                timestamp=utc_now(),
            )
            self.records.append(record)
        return record


class RecordingBroadcaster(Broadcaster):
    """Records every event instead of queueing it on a connection."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: List[Tuple[str, dict]] = []
        self.closed = set()

    def send(self, connection_id: str, event: dict) -> bool:
        if connection_id in self.closed:
            return False
        self.sent.append((connection_id, event))
        return True

    def events_for(self, connection_id: str, event_type: Optional[str] = None) -> List[dict]:
        return [
            event for target, event in self.sent
            if target == connection_id
            and (event_type is None or event["type"] == event_type)
        ]

    def events_of_type(self, event_type: str) -> List[Tuple[str, dict]]:
        return [(target, event) for target, event in self.sent if event["type"] == event_type]


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.add_room("R1", max_participants=5)
    return d


@pytest.fixture
def message_store():
    return FakeMessageStore()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()
