"""
Everything that makes up the state of a single game:
the board, the pieces taken off of it, and what happened last.

A GameState is owned by exactly one Room.
"""

from dataclasses import dataclass, field
from typing import Optional, Self

from src.chess.board import Board
from src.chess.pieces import Piece
from src.core.shared_types import Color


@dataclass
class CapturedPieces:
    """Pieces removed from the board, keyed by the color of the CAPTURED piece, in capture order."""

    white: list[Piece] = field(default_factory=list)
    black: list[Piece] = field(default_factory=list)

    def record(self, piece: Piece) -> None:
        self.of(piece.color).append(piece)

    def of(self, color: Color) -> list[Piece]:
        return self.white if color == Color.WHITE else self.black


@dataclass
class LastMove:
    from_square: str
    to_square: str
    piece: Piece


@dataclass
class GameState:
    board: Board
    captured_pieces: CapturedPieces = field(default_factory=CapturedPieces)
    last_move: Optional[LastMove] = None
    move_history: list[str] = field(default_factory=list)

    @classmethod
    def new_game(cls) -> Self:
        return cls(board=Board.starting_position())
