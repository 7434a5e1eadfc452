"""
Push transport: one websocket per client, JSON envelopes in both directions.

    client -> server   {"event": "create-room" | "join-room" | "make-move" | "get-room" | "leave-room", "data": {...}}
    server -> client   {"event": "room-created" | "room-joined" | "player-joined" | "move-made" | "move-error"
                                 | "room-state" | "room-left" | "player-left" | "error", "data": {...}}

No game logic lives here: every event is handed to the RoomService, and its result is sent / broadcast.
Errors only go back to the connection that caused them.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.requests import HTTPConnection
from pydantic import BaseModel, ValidationError

from src.api.dependencies import ServiceDep
from src.api.models import (
    ActionEnvelope,
    CreateRoomRequest,
    GetRoomRequest,
    JoinRoomRequest,
    LeaveResponse,
    LeaveRoomRequest,
    MoveRequest,
)
from src.core.exceptions import SERVER_ERROR_CODE, GameError, InvalidRequestError
from src.services.room_service import RoomService

_log = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

Payload = dict[str, Any]


def _dump(model: BaseModel) -> Payload:
    return model.model_dump(mode="json", by_alias=True)


class ConnectionManager:
    """Which websocket listens to which room (a 'channel' per room id)."""

    def __init__(self) -> None:
        self._channels: dict[str, dict[str, WebSocket]] = {}

    def subscribe(self, room_id: str, connection_ref: str, websocket: WebSocket) -> None:
        self._channels.setdefault(room_id, {})[connection_ref] = websocket

    def unsubscribe(self, room_id: str, connection_ref: str) -> None:
        channel = self._channels.get(room_id)
        if channel is None:
            return
        channel.pop(connection_ref, None)
        if not channel:
            del self._channels[room_id]

    def subscribers(self, room_id: str) -> list[str]:
        return list(self._channels.get(room_id, {}))

    async def send(self, websocket: WebSocket, event: str, data: Payload) -> None:
        await websocket.send_json({"event": event, "data": data})

    async def broadcast(
        self, room_id: str, event: str, data: Payload, exclude: Optional[str] = None
    ) -> None:
        """Send to everyone in the room (except `exclude`). A peer that is already gone is skipped, its own handler cleans up."""
        for connection_ref, websocket in list(self._channels.get(room_id, {}).items()):
            if connection_ref == exclude:
                continue
            try:
                await self.send(websocket, event, data)
            except (RuntimeError, WebSocketDisconnect):
                _log.debug("Skipped %s for closed connection %s", event, connection_ref)


def get_connections(connection: HTTPConnection) -> ConnectionManager:
    return connection.app.state.connections


ConnectionsDep = Annotated[ConnectionManager, Depends(get_connections)]


@dataclass
class Session:
    """What one connection is doing: at most one seat in one room at a time."""

    connection_ref: str
    websocket: WebSocket
    room_id: Optional[str] = None
    player_id: Optional[str] = None

    def is_seated(self) -> bool:
        return self.room_id is not None and self.player_id is not None

    def seat(self, room_id: str, player_id: str) -> None:
        self.room_id = room_id
        self.player_id = player_id

    def unseat(self) -> None:
        self.room_id = None
        self.player_id = None

    def require_no_seat(self) -> None:
        if self.is_seated():
            raise InvalidRequestError(
                f"Already playing in room {self.room_id}. Leave it first."
            )

    def require_seat(self) -> tuple[str, str]:
        if self.room_id is None or self.player_id is None:
            raise InvalidRequestError("Create or join a room first.")
        return self.room_id, self.player_id


# --- EVENT HANDLERS ---
Handler = Callable[[Session, Payload, RoomService, ConnectionManager], Awaitable[None]]


async def _on_create_room(
    session: Session, data: Payload, service: RoomService, connections: ConnectionManager
) -> None:
    session.require_no_seat()
    response = service.create_room(
        CreateRoomRequest.model_validate(data), session.connection_ref
    )
    assert response.player is not None
    session.seat(response.room.id, response.player.id)
    connections.subscribe(response.room.id, session.connection_ref, session.websocket)
    await connections.send(
        session.websocket,
        "room-created",
        {"roomId": response.room.id, **_dump(response)},
    )


async def _on_join_room(
    session: Session, data: Payload, service: RoomService, connections: ConnectionManager
) -> None:
    session.require_no_seat()
    response = service.join_room(
        JoinRoomRequest.model_validate(data), session.connection_ref
    )
    assert response.player is not None
    room_id = response.room.id
    session.seat(room_id, response.player.id)
    connections.subscribe(room_id, session.connection_ref, session.websocket)

    payload = _dump(response)
    await connections.send(session.websocket, "room-joined", payload)
    await connections.broadcast(
        room_id, "player-joined", payload, exclude=session.connection_ref
    )


async def _on_make_move(
    session: Session, data: Payload, service: RoomService, connections: ConnectionManager
) -> None:
    # the mover is whoever sits on this connection, whatever the payload claims
    room_id, player_id = session.require_seat()
    request = MoveRequest.model_validate(
        {
            "roomId": room_id,
            "from": data.get("from"),
            "to": data.get("to"),
            "playerId": player_id,
        }
    )
    response = service.make_move(request)
    await connections.broadcast(room_id, "move-made", _dump(response))


async def _on_get_room(
    session: Session, data: Payload, service: RoomService, connections: ConnectionManager
) -> None:
    request = GetRoomRequest.model_validate({"roomId": session.room_id, **data})
    await connections.send(
        session.websocket, "room-state", _dump(service.get_room(request))
    )


async def _on_leave_room(
    session: Session, data: Payload, service: RoomService, connections: ConnectionManager
) -> None:
    room_id, player_id = session.require_seat()
    response = service.leave_room(
        LeaveRoomRequest(room_id=room_id, player_id=player_id)
    )
    connections.unsubscribe(room_id, session.connection_ref)
    session.unseat()

    await connections.send(session.websocket, "room-left", {"roomId": room_id})
    if response.room is not None:
        await connections.broadcast(room_id, "player-left", _dump(response))


HANDLERS: dict[str, Handler] = {
    "create-room": _on_create_room,
    "join-room": _on_join_room,
    "make-move": _on_make_move,
    "get-room": _on_get_room,
    "leave-room": _on_leave_room,
}

# rejected moves get their own event, so clients can tell them apart from lobby errors
ERROR_EVENTS: dict[str, str] = {"make-move": "move-error"}


def _error_payload(code: str, message: str, reason: Optional[str] = None) -> Payload:
    payload: Payload = {"success": False, "error": code, "message": message}
    if reason is not None:
        payload["reason"] = str(reason)
    return payload


async def handle_message(
    raw: str, session: Session, service: RoomService, connections: ConnectionManager
) -> None:
    """Parse one envelope and dispatch it. Nothing that goes wrong here may end the connection."""
    try:
        envelope = ActionEnvelope.model_validate_json(raw)
    except ValidationError:
        _log.warning("Malformed envelope on %s: %.100r", session.connection_ref, raw)
        await connections.send(
            session.websocket,
            "error",
            _error_payload(SERVER_ERROR_CODE, "Could not parse message."),
        )
        return

    handler = HANDLERS.get(envelope.event)
    if handler is None:
        _log.warning("Unknown event %r on %s", envelope.event, session.connection_ref)
        await connections.send(
            session.websocket,
            "error",
            _error_payload(SERVER_ERROR_CODE, f"Unknown event: {envelope.event!r}"),
        )
        return

    error_event = ERROR_EVENTS.get(envelope.event, "error")
    try:
        await handler(session, envelope.data, service, connections)
    except ValidationError:
        _log.warning("Malformed %r payload on %s", envelope.event, session.connection_ref)
        await connections.send(
            session.websocket,
            error_event,
            _error_payload(SERVER_ERROR_CODE, f"Malformed {envelope.event!r} payload."),
        )
    except GameError as exc:
        await connections.send(
            session.websocket,
            error_event,
            _error_payload(exc.code, str(exc), getattr(exc, "reason", None)),
        )


async def handle_disconnect(
    session: Session, service: RoomService, connections: ConnectionManager
) -> None:
    """Remove the connection's player everywhere, tell whoever is left."""
    for room_id, remaining in service.disconnect(session.connection_ref):
        connections.unsubscribe(room_id, session.connection_ref)
        if remaining is not None:
            await connections.broadcast(
                room_id,
                "player-left",
                _dump(LeaveResponse(room_id=room_id, room=remaining)),
            )
    session.unseat()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket, service: ServiceDep, connections: ConnectionsDep
) -> None:
    await websocket.accept()
    session = Session(connection_ref=uuid4().hex, websocket=websocket)
    _log.info("User connected: %s", session.connection_ref)
    try:
        while True:
            raw = await websocket.receive_text()
            await handle_message(raw, session, service, connections)
    except WebSocketDisconnect:
        _log.info("User disconnected: %s", session.connection_ref)
    finally:
        await handle_disconnect(session, service, connections)
