"""
Boundary layer data model(s).

These objects are what the Room Registry hands back to whoever calls it (the Service, and through it any transport).
They are snapshots: mutating them never affects a live room.
"""

from dataclasses import dataclass
from typing import Optional

from src.chess.game_state import GameState
from src.chess.pieces import Piece
from src.core.shared_types import Color, RoomStatus


@dataclass
class MoveOutcome:
    """Result of an accepted move: the state after the move + who is to move next."""

    room_id: str
    from_square: str
    to_square: str
    game_state: GameState
    current_player: Color
    status: RoomStatus
    captured: Optional[Piece] = None
    winner: Optional[Color] = None
