"""Realtime chat WebSocket endpoint.

    WebSocket /ws/chat?anonymousId=<id>

Protocol Flow:
    1. Client connects with its anonymous id
       -> unknown or missing id: socket closed with 1008 before accept
       -> Server sends: {type: "connected", connectionId, anonymousId}
    2. Client sends: {type: "join_room", roomId}
       -> Peers receive: {type: "user_joined", roomId, userId}
       -> Client receives: {type: "online_users", roomId, users: [...]}
    3. Client sends: {type: "send_message", roomId, content, userColor?}
       -> Room receives: {type: "receive_message", id, roomId, anonymousId,
                          userColor, content, timestamp}
    4. Client sends: {type: "get_online_users", roomId}
       -> Client receives: {type: "online_users", roomId, users: [...]}
    5. Client sends: {type: "leave_room", roomId}
       -> Remaining members receive: {type: "user_left", roomId, userId}
    6. On disconnect -> same as leave_room for every joined room

Any rejected command produces {type: "error", message} for the sender only.
Commands from one connection are handled one at a time, in arrival order.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from .connection import Connection
from .engine import ChatEngine, get_engine
from .errors import ChatError, InternalError, Unauthenticated
from .schemas import CommandType, RoomCommand, SendMessageCommand

logger = logging.getLogger(__name__)

router = APIRouter()

# Message reported when a command fails for an unexpected reason.
_FAILURE_MESSAGES = {
    CommandType.JOIN_ROOM: "Failed to join room",
    CommandType.LEAVE_ROOM: "Failed to leave room",
    CommandType.GET_ONLINE_USERS: "Failed to get online users",
    CommandType.SEND_MESSAGE: "Failed to send message",
}


async def handle_command(engine: ChatEngine, connection: Connection, data: dict) -> None:
    """Run one inbound command, reporting any failure to the sender only."""
    raw_type = data.get("type")
    try:
        command = CommandType(raw_type)
    except ValueError:
        engine.broadcaster.send(
            connection.id, {"type": "error", "message": f"Unknown event type: {raw_type}"}
        )
        return

    try:
        if command == CommandType.SEND_MESSAGE:
            payload = SendMessageCommand.model_validate(data)
            await engine.pipeline.send(
                room_id=payload.roomId,
                anonymous_id=connection.anonymous_id,
                user_color=payload.userColor,
                content=payload.content,
                client_timestamp=payload.timestamp,
            )
            return

        room_id = RoomCommand.model_validate(data).roomId
        if command == CommandType.JOIN_ROOM:
            await engine.registry.join(room_id, connection.id)
        elif command == CommandType.LEAVE_ROOM:
            await engine.registry.leave(room_id, connection.id)
        else:
            await engine.registry.online_users(room_id, connection.id)

    except ValidationError as exc:
        logger.debug(f"[WS] Invalid {command.value} payload from {connection.id}: {exc}")
        engine.broadcaster.send(
            connection.id, {"type": "error", "message": "Invalid payload"}
        )
    except ChatError as exc:
        logger.info(f"[WS] {command.value} rejected for {connection.id}: {exc.message}")
        engine.broadcaster.send(connection.id, {"type": "error", "message": exc.message})
    except Exception:
        logger.exception(f"[WS] Unexpected error handling {command.value} for {connection.id}")
        error = InternalError(_FAILURE_MESSAGES[command])
        engine.broadcaster.send(connection.id, {"type": "error", "message": error.message})


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(
    websocket: WebSocket,
    anonymousId: Optional[str] = Query(None, description="Anonymous credential"),
) -> None:
    """WebSocket endpoint for real-time chat.

    One connection may join several rooms; every event names its room.

    Args:
        websocket: The WebSocket connection.
        anonymousId: Credential issued by POST /api/auth/anonymous.
    """
    engine = get_engine()

    try:
        identity = await engine.gateway.authenticate(anonymousId)
    except Unauthenticated as exc:
        logger.warning(f"[WS] Handshake rejected: {exc.message}")
        await websocket.close(code=1008, reason=exc.message)  # 1008 = Policy Violation
        return
    except Exception:
        logger.exception("[WS] Handshake failed")
        await websocket.close(code=1011, reason="Authentication failed")
        return

    await websocket.accept()
    connection = Connection(
        websocket, identity.anonymous_id, outbox_limit=engine.outbox_limit
    )
    engine.attach(connection)
    engine.broadcaster.send(connection.id, {
        "type": "connected",
        "connectionId": connection.id,
        "anonymousId": connection.anonymous_id,
    })

    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                data = None
            if not isinstance(data, dict):
                engine.broadcaster.send(
                    connection.id, {"type": "error", "message": "Invalid payload"}
                )
                continue

            logger.debug("[WS] %s received: type=%s", connection.id, data.get("type", "?"))
            await handle_command(engine, connection, data)

    except WebSocketDisconnect:
        logger.info(f"[WS] Connection {connection.id} disconnected")
    finally:
        await engine.detach(connection)
