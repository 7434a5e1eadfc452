"""
Requests and Response models

One explicit schema for everything that crosses the transport boundary, shared by the HTTP routes and the websocket.
On the wire the fields are camelCase ("roomId", "capturedPieces", "lastMove", ...); snake_case is accepted as well.
"""

from datetime import datetime
from typing import Any, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.chess.board import Board
from src.chess.game_state import CapturedPieces, GameState, LastMove
from src.chess.pieces import Piece
from src.chess.square import BOARD_SIZE
from src.core.exceptions import InvalidRequestError
from src.core.models import MoveOutcome
from src.core.shared_types import Color, PieceType, RoomStatus
from src.rooms.room import Player, Room

MAX_PLAYER_NAME_LENGTH = 20


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _is_algebraic_notation(value: str) -> bool:
    if len(value) != 2:
        return False
    return value[0].isalpha() and value[1].isnumeric()


# --- GAME STATE SCHEMA ---
class PieceSchema(WireModel):
    type: PieceType
    color: Color
    has_moved: bool = False

    @classmethod
    def from_domain(cls, piece: Piece) -> Self:
        return cls(type=piece.type, color=piece.color, has_moved=piece.has_moved)

    def to_domain(self) -> Piece:
        return Piece(self.type, self.color, self.has_moved)


class CapturedPiecesSchema(WireModel):
    white: list[PieceSchema] = []
    black: list[PieceSchema] = []

    @model_validator(mode="after")
    def validate_colors(self) -> Self:
        """A captured piece is filed under its own color."""
        for color, pieces in ((Color.WHITE, self.white), (Color.BLACK, self.black)):
            if any(piece.color != color for piece in pieces):
                raise InvalidRequestError(
                    f"capturedPieces.{color} may only contain {color} pieces."
                )
        return self


class LastMoveSchema(WireModel):
    from_square: str = Field(alias="from")
    to_square: str = Field(alias="to")
    piece: PieceSchema


class GameStateSchema(WireModel):
    board: list[list[Optional[PieceSchema]]]
    captured_pieces: CapturedPiecesSchema
    last_move: Optional[LastMoveSchema] = None
    move_history: list[str] = []

    @field_validator("board")
    @classmethod
    def validate_board_dimensions(
        cls, value: list[list[Optional[PieceSchema]]]
    ) -> list[list[Optional[PieceSchema]]]:
        if len(value) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in value):
            raise InvalidRequestError(
                f"Board must be {BOARD_SIZE} rows of {BOARD_SIZE} squares."
            )
        return value

    @classmethod
    def from_domain(cls, state: GameState) -> Self:
        return cls(
            board=[
                [PieceSchema.from_domain(p) if p is not None else None for p in row]
                for row in state.board.grid
            ],
            captured_pieces=CapturedPiecesSchema(
                white=[PieceSchema.from_domain(p) for p in state.captured_pieces.white],
                black=[PieceSchema.from_domain(p) for p in state.captured_pieces.black],
            ),
            last_move=(
                LastMoveSchema(
                    from_square=state.last_move.from_square,
                    to_square=state.last_move.to_square,
                    piece=PieceSchema.from_domain(state.last_move.piece),
                )
                if state.last_move is not None
                else None
            ),
            move_history=list(state.move_history),
        )

    def to_domain(self) -> GameState:
        board = Board(
            [[p.to_domain() if p is not None else None for p in row] for row in self.board]
        )
        captured = CapturedPieces(
            white=[p.to_domain() for p in self.captured_pieces.white],
            black=[p.to_domain() for p in self.captured_pieces.black],
        )
        last_move = (
            LastMove(
                from_square=self.last_move.from_square,
                to_square=self.last_move.to_square,
                piece=self.last_move.piece.to_domain(),
            )
            if self.last_move is not None
            else None
        )
        return GameState(board, captured, last_move, list(self.move_history))


class PlayerSchema(WireModel):
    id: str
    name: str
    color: Color

    @classmethod
    def from_domain(cls, player: Player) -> Self:
        return cls(id=player.id, name=player.name, color=player.color)


class RoomSchema(WireModel):
    id: str
    players: list[PlayerSchema]
    game_state: GameStateSchema
    current_player: Color
    status: RoomStatus
    created_at: datetime
    winner: Optional[Color] = None

    @classmethod
    def from_domain(cls, room: Room) -> Self:
        return cls(
            id=room.id,
            players=[PlayerSchema.from_domain(p) for p in room.players],
            game_state=GameStateSchema.from_domain(room.game_state),
            current_player=room.current_player,
            status=room.status,
            created_at=room.created_at,
            winner=room.winner,
        )


# --- REQUEST MODELS ---
class _PlayerNameMixin(WireModel):
    player_name: str

    @field_validator("player_name")
    @classmethod
    def validate_player_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise InvalidRequestError("Player name cannot be empty.")
        if len(name) > MAX_PLAYER_NAME_LENGTH:
            raise InvalidRequestError(
                f"Player name cannot be longer than {MAX_PLAYER_NAME_LENGTH} characters."
            )
        return name


class CreateRoomRequest(_PlayerNameMixin):
    pass


class JoinRoomRequest(_PlayerNameMixin):
    room_id: str


class GetRoomRequest(WireModel):
    room_id: str


class LeaveRoomRequest(WireModel):
    room_id: str
    player_id: str


class MoveRequest(WireModel):
    """
    Who moves is identified by `player_color` (request/response clients) or `player_id` (resolved to the player's color).
    At least one of the two is required.
    """

    room_id: str
    from_square: str = Field(alias="from")
    to_square: str = Field(alias="to")
    player_color: Optional[Color] = None
    player_id: Optional[str] = None

    @field_validator(*["from_square", "to_square"])
    @classmethod
    def validate_square(cls, value: str) -> str:
        if not _is_algebraic_notation(value):
            raise InvalidRequestError(
                f"Cannot interpret {value!r} as a valid square name."
            )
        return value

    @model_validator(mode="after")
    def validate_mover(self) -> Self:
        if self.player_color is None and self.player_id is None:
            raise InvalidRequestError("Either playerColor or playerId is required.")
        return self


class ActionEnvelope(BaseModel):
    """Push transport message: {"event": "make-move", "data": {...}}"""

    event: str
    data: dict[str, Any] = {}


# --- RESPONSE MODELS ---
class RoomResponse(WireModel):
    success: bool = True
    room: RoomSchema
    player: Optional[PlayerSchema] = None

    @classmethod
    def from_domain(cls, room: Room, player: Optional[Player] = None) -> Self:
        return cls(
            room=RoomSchema.from_domain(room),
            player=PlayerSchema.from_domain(player) if player is not None else None,
        )


class RoomListResponse(WireModel):
    success: bool = True
    rooms: list[RoomSchema]


class MoveResponse(WireModel):
    success: bool = True
    room_id: str
    from_square: str = Field(alias="from")
    to_square: str = Field(alias="to")
    game_state: GameStateSchema
    current_player: Color
    status: RoomStatus
    captured: Optional[PieceSchema] = None
    winner: Optional[Color] = None

    @classmethod
    def from_domain(cls, outcome: MoveOutcome) -> Self:
        return cls(
            room_id=outcome.room_id,
            from_square=outcome.from_square,
            to_square=outcome.to_square,
            game_state=GameStateSchema.from_domain(outcome.game_state),
            current_player=outcome.current_player,
            status=outcome.status,
            captured=(
                PieceSchema.from_domain(outcome.captured)
                if outcome.captured is not None
                else None
            ),
            winner=outcome.winner,
        )


class LeaveResponse(WireModel):
    success: bool = True
    room_id: str
    # None once the last player left and the room got destroyed
    room: Optional[RoomSchema] = None


class ErrorResponse(WireModel):
    success: bool = False
    error: str
    message: str
    reason: Optional[str] = None


class HealthResponse(WireModel):
    status: str = "ok"
    rooms: int
    poll_interval_seconds: float
