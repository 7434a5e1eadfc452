"""Orchestration of communication from the transport adapters to the Room Registry (and the reverse direction)."""

from src.api.models import (
    CreateRoomRequest,
    GetRoomRequest,
    JoinRoomRequest,
    LeaveResponse,
    LeaveRoomRequest,
    MoveRequest,
    MoveResponse,
    RoomListResponse,
    RoomResponse,
    RoomSchema,
)
from src.rooms.registry import RoomRegistry


class RoomService:
    """Orchestration of layers for the chess rooms. Holds no state of its own."""

    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry

    # -- Transport logic ---
    def create_room(
        self, request: CreateRoomRequest, connection_ref: str | None = None
    ) -> RoomResponse:
        """First player requested a new room."""
        room, player = self.registry.create_room(request.player_name, connection_ref)
        return RoomResponse.from_domain(room, player)

    def join_room(
        self, request: JoinRoomRequest, connection_ref: str | None = None
    ) -> RoomResponse:
        """Second player requested to join a room."""
        room, player = self.registry.join_room(
            request.room_id, request.player_name, connection_ref
        )
        return RoomResponse.from_domain(room, player)

    def get_room(self, request: GetRoomRequest) -> RoomResponse:
        """
        Retrieve current room state.
        ----
        Used in "polling" loop by request/response clients to find out when it is their turn.
        """
        return RoomResponse.from_domain(self.registry.get_room(request.room_id))

    def list_rooms(self) -> RoomListResponse:
        return RoomListResponse(
            rooms=[RoomSchema.from_domain(room) for room in self.registry.list_rooms()]
        )

    def make_move(self, request: MoveRequest) -> MoveResponse:
        """Make a move attempt."""
        outcome = self.registry.make_move(
            request.room_id,
            request.from_square,
            request.to_square,
            acting_color=request.player_color,
            player_id=request.player_id,
        )
        return MoveResponse.from_domain(outcome)

    def leave_room(self, request: LeaveRoomRequest) -> LeaveResponse:
        """Player leaves. The room is destroyed once empty."""
        remaining = self.registry.leave_room(request.room_id, request.player_id)
        return LeaveResponse(
            room_id=request.room_id,
            room=RoomSchema.from_domain(remaining) if remaining is not None else None,
        )

    def disconnect(self, connection_ref: str) -> list[tuple[str, RoomSchema | None]]:
        """A push connection dropped. Returns (room id, remaining room or None if destroyed) per affected room."""
        return [
            (room_id, RoomSchema.from_domain(room) if room is not None else None)
            for room_id, room in self.registry.disconnect(connection_ref)
        ]
