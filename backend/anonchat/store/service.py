"""DuckDB-based chat storage service.

This module provides persistent storage for anonymous users, rooms and
messages using DuckDB. The service implements the singleton pattern to
ensure only one database connection exists at a time, and it doubles as the
realtime engine's credential directory, room directory and message store.

Database Schema:
    users table:
        - anonymous_id: Primary key, issued by POST /api/auth/anonymous
        - color: Display color
        - joined_at: Creation time (UTC)
    rooms table:
        - id, name, description, max_participants, is_active,
          created_at, created_by
    messages table:
        - seq: Auto-incrementing insertion order
        - id: Server-assigned message id
        - room_id, anonymous_id, user_color, content
        - timestamp: Server-assigned time (UTC)

Thread Safety:
    The realtime engine calls into this service from worker threads. A
    single lock serializes every use of the DuckDB connection.

Usage:
    service = ChatStore.get_instance()
    user = service.create_user()
    room = service.create_room(RoomCreate(name="general"))
    message = service.append_message(room.id, user.anonymousId, user.color, "hi")
"""
import logging
import random
import string
import threading
import uuid
from typing import List, Optional

import duckdb

from anonchat.config import get_config
from anonchat.realtime.base import (
    CredentialDirectory,
    MessageStore,
    RoomDirectory,
    RoomInfo,
)

from .schemas import (
    DEFAULT_USER_COLOR,
    AnonymousUser,
    Room,
    RoomCreate,
    StoredMessage,
    utc_now,
)

logger = logging.getLogger(__name__)

USER_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7", "#DDA0DD", "#98D8C8"
]

DEFAULT_MAX_PARTICIPANTS = 50

_ROOM_COLUMNS = (
    "id, name, description, max_participants, is_active, created_at, created_by"
)
_MESSAGE_COLUMNS = "id, room_id, anonymous_id, user_color, content, timestamp"


def generate_anonymous_id() -> str:
    """Generate an anonymous id of the form ``user_<9 base36 chars>``."""
    alphabet = string.ascii_lowercase + string.digits
    return "user_" + "".join(random.choices(alphabet, k=9))


class ChatStore(CredentialDirectory, RoomDirectory, MessageStore):
    """Singleton service for users, rooms and messages in DuckDB.

    Attributes:
        _instance: Singleton instance of the service.
        _db_path: Path to the DuckDB database file.
    """

    _instance: Optional["ChatStore"] = None
    _db_path: str = "anonchat.duckdb"

    def __init__(
        self,
        db_path: Optional[str] = None,
        default_max_participants: int = DEFAULT_MAX_PARTICIPANTS,
    ) -> None:
        """Initialize the chat store.

        Creates the database file and schema if they don't exist.

        Args:
            db_path: Path to DuckDB file. Use ":memory:" for tests.
            default_max_participants: Cap applied to rooms created without one.
        """
        if db_path:
            self._db_path = db_path
        self._default_max_participants = default_max_participants
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()
        self._initialize_db()

    @classmethod
    def get_instance(
        cls,
        db_path: Optional[str] = None,
        default_max_participants: int = DEFAULT_MAX_PARTICIPANTS,
    ) -> "ChatStore":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
            default_max_participants: Only used on first call.
        """
        if cls._instance is None:
            cls._instance = cls(db_path, default_max_participants)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create tables if they don't exist. Safe to call multiple times."""
        with self._lock:
            conn = self._get_connection()
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    anonymous_id VARCHAR PRIMARY KEY,
                    color VARCHAR NOT NULL,
                    joined_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rooms (
                    id VARCHAR PRIMARY KEY,
                    name VARCHAR NOT NULL,
                    description VARCHAR,
                    max_participants INTEGER NOT NULL,
                    is_active BOOLEAN NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    created_by VARCHAR
                )
            """)
            conn.execute("""
                CREATE SEQUENCE IF NOT EXISTS messages_seq START 1;
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    seq BIGINT DEFAULT nextval('messages_seq') PRIMARY KEY,
                    id VARCHAR NOT NULL UNIQUE,
                    room_id VARCHAR NOT NULL,
                    anonymous_id VARCHAR NOT NULL,
                    user_color VARCHAR NOT NULL,
                    content VARCHAR NOT NULL,
                    timestamp TIMESTAMP NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_room_id ON messages(room_id)
            """)

    # =========================================================================
    # Users
    # =========================================================================

    def create_user(self) -> AnonymousUser:
        """Issue a new anonymous identity with a random color."""
        user = AnonymousUser(
            anonymousId=generate_anonymous_id(),
            color=random.choice(USER_COLORS),
        )
        with self._lock:
            self._get_connection().execute(
                "INSERT INTO users (anonymous_id, color, joined_at) VALUES (?, ?, ?)",
                [user.anonymousId, user.color, user.joinedAt],
            )
        logger.info("Created anonymous user %s", user.anonymousId)
        return user

    def get_user(self, anonymous_id: str) -> Optional[AnonymousUser]:
        with self._lock:
            row = self._get_connection().execute(
                "SELECT anonymous_id, color, joined_at FROM users WHERE anonymous_id = ?",
                [anonymous_id],
            ).fetchone()
        if row is None:
            return None
        return AnonymousUser(anonymousId=row[0], color=row[1], joinedAt=row[2])

    def user_exists(self, anonymous_id: str) -> bool:
        return self.get_user(anonymous_id) is not None

    # =========================================================================
    # Rooms
    # =========================================================================

    def create_room(self, request: RoomCreate) -> Room:
        room = Room(
            name=request.name.strip(),
            description=request.description.strip() if request.description else None,
            maxParticipants=request.maxParticipants or self._default_max_participants,
            createdBy=request.createdBy,
        )
        with self._lock:
            self._get_connection().execute(
                f"INSERT INTO rooms ({_ROOM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    room.id,
                    room.name,
                    room.description,
                    room.maxParticipants,
                    room.isActive,
                    room.createdAt,
                    room.createdBy,
                ],
            )
        logger.info("Created room %s (%s)", room.id, room.name)
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        with self._lock:
            row = self._get_connection().execute(
                f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = ?",
                [room_id],
            ).fetchone()
        return _row_to_room(row) if row else None

    def list_active_rooms(self) -> List[Room]:
        """Active rooms, newest first."""
        with self._lock:
            rows = self._get_connection().execute(
                f"""
                SELECT {_ROOM_COLUMNS} FROM rooms
                WHERE is_active
                ORDER BY created_at DESC
                """
            ).fetchall()
        return [_row_to_room(row) for row in rows]

    def get_room_info(self, room_id: str) -> Optional[RoomInfo]:
        room = self.get_room(room_id)
        if room is None:
            return None
        return RoomInfo(
            room_id=room.id,
            is_active=room.isActive,
            max_participants=room.maxParticipants,
        )

    def deactivate_room(self, room_id: str) -> Optional[Room]:
        """Soft-delete a room and drop its messages.

        Returns:
            The updated room, or None if it does not exist.
        """
        with self._lock:
            conn = self._get_connection()
            updated = conn.execute(
                f"UPDATE rooms SET is_active = false WHERE id = ? RETURNING {_ROOM_COLUMNS}",
                [room_id],
            ).fetchone()
            if updated is None:
                return None
            conn.execute("DELETE FROM messages WHERE room_id = ?", [room_id])
        logger.info("Deactivated room %s and deleted its messages", room_id)
        return _row_to_room(updated)

    # =========================================================================
    # Messages
    # =========================================================================

    def append_message(
        self,
        room_id: str,
        anonymous_id: str,
        user_color: str,
        content: str,
    ) -> StoredMessage:
        message = StoredMessage(
            id=str(uuid.uuid4()),
            roomId=room_id,
            anonymousId=anonymous_id,
            userColor=user_color or DEFAULT_USER_COLOR,
            content=content,
            timestamp=utc_now(),
        )
        with self._lock:
            self._get_connection().execute(
                f"INSERT INTO messages ({_MESSAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    message.id,
                    message.roomId,
                    message.anonymousId,
                    message.userColor,
                    message.content,
                    message.timestamp,
                ],
            )
        return message

    def get_room_messages(self, room_id: str, limit: int = 100) -> List[StoredMessage]:
        """Messages of one room, oldest first."""
        with self._lock:
            rows = self._get_connection().execute(
                f"""
                SELECT {_MESSAGE_COLUMNS} FROM messages
                WHERE room_id = ?
                ORDER BY seq ASC
                LIMIT ?
                """,
                [room_id, limit],
            ).fetchall()
        return [_row_to_message(row) for row in rows]

    def get_recent_messages(self, limit: int = 100) -> List[StoredMessage]:
        """Messages across all rooms, newest first."""
        with self._lock:
            rows = self._get_connection().execute(
                f"""
                SELECT {_MESSAGE_COLUMNS} FROM messages
                ORDER BY seq DESC
                LIMIT ?
                """,
                [limit],
            ).fetchall()
        return [_row_to_message(row) for row in rows]

    def delete_message(self, message_id: str) -> bool:
        with self._lock:
            deleted = self._get_connection().execute(
                "DELETE FROM messages WHERE id = ? RETURNING id",
                [message_id],
            ).fetchone()
        return deleted is not None

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


def get_store() -> ChatStore:
    """Return the singleton store, opened at the configured database path."""
    config = get_config()
    return ChatStore.get_instance(
        db_path=config.database.path,
        default_max_participants=config.realtime.default_max_participants,
    )


def _row_to_room(row: tuple) -> Room:
    return Room(
        id=row[0],
        name=row[1],
        description=row[2],
        maxParticipants=row[3],
        isActive=row[4],
        createdAt=row[5],
        createdBy=row[6],
    )


def _row_to_message(row: tuple) -> StoredMessage:
    return StoredMessage(
        id=row[0],
        roomId=row[1],
        anonymousId=row[2],
        userColor=row[3],
        content=row[4],
        timestamp=row[5],
    )
