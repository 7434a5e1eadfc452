"""
Move validation and application.

The validator is intentionally shallow: it only checks that the squares exist and that the player moves one of their own pieces.
NOT checked here:
* destination occupied by your own piece
* the movement pattern of the piece / pieces in the way
* check, checkmate, castling, en passant, promotion
* whose turn it is (the Room Registry takes care of that)
"""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from src.chess.game_state import GameState, LastMove
from src.chess.pieces import Piece
from src.chess.square import decode
from src.core.shared_types import Color

_log = logging.getLogger(__name__)


class MoveError(StrEnum):
    INVALID_POSITION = "InvalidPosition"
    INVALID_PIECE = "InvalidPiece"


@dataclass(frozen=True)
class MoveValidation:
    valid: bool
    error: Optional[MoveError] = None

    @classmethod
    def ok(cls) -> "MoveValidation":
        return cls(valid=True)

    @classmethod
    def rejected(cls, error: MoveError) -> "MoveValidation":
        return cls(valid=False, error=error)


def to_uci(from_square: str, to_square: str) -> str:
    """'e2', 'e4' -> 'e2e4'"""
    return f"{from_square}{to_square}"


def validate_move(
    state: GameState, from_square: str, to_square: str, player_color: Color
) -> MoveValidation:
    """
    1. Both squares must decode, and differ  --> otherwise InvalidPosition
    2. The origin holds a piece of the player's own color  --> otherwise InvalidPiece
    """
    origin = decode(from_square)
    target = decode(to_square)
    if origin is None or target is None:
        return MoveValidation.rejected(MoveError.INVALID_POSITION)

    # a piece "moving" onto its own square would capture itself
    if origin == target:
        return MoveValidation.rejected(MoveError.INVALID_POSITION)

    piece = state.board.piece_at(origin)
    if piece is None or piece.color != player_color:
        return MoveValidation.rejected(MoveError.INVALID_PIECE)

    return MoveValidation.ok()


def apply_move(state: GameState, from_square: str, to_square: str) -> Optional[Piece]:
    """
    Mutate the game state for an (already validated) move.
    ----

    1. relocate the piece, marking it as moved
    2. whatever stood on the target square is captured (capture by occupation)
    3. overwrite the last move and extend the move history

    Returns the captured piece, if any.

    NOTE: not idempotent. Apply exactly once per validated move.
    NOTE: undecodable squares / an empty origin are silently ignored. Cannot happen after validation.
    """
    origin = decode(from_square)
    target = decode(to_square)
    if origin is None or target is None:
        return None

    piece = state.board.piece_at(origin)
    if piece is None:
        return None

    captured = state.board.piece_at(target)
    if captured is not None:
        state.captured_pieces.record(captured)

    piece.mark_moved()
    state.board.place(target, piece)
    state.board.remove(origin)

    state.last_move = LastMove(from_square=from_square, to_square=to_square, piece=piece)
    state.move_history.append(to_uci(from_square, to_square))

    _log.debug(
        "%s %s moved %s -> %s%s",
        piece.color,
        piece.type,
        from_square,
        to_square,
        f", captured {captured.color} {captured.type}" if captured else "",
    )
    return captured
