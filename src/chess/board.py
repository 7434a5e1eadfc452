"""The Board: an 8x8 grid of optional pieces. Pure data + initialization, no rules."""

from dataclasses import dataclass
from typing import Self

from src.chess.pieces import BACK_RANK_ORDER, Piece
from src.chess.square import BOARD_SIZE, Square
from src.core.shared_types import Color, PieceType

Grid = list[list[Piece | None]]


@dataclass
class Board:
    grid: Grid

    @classmethod
    def empty(cls) -> Self:
        return cls([[None] * BOARD_SIZE for _ in range(BOARD_SIZE)])

    @classmethod
    def starting_position(cls) -> Self:
        """
        Standard starting position.

        * row 0 (8th rank): black pieces, rook on a8 ... rook on h8
        * row 1 (7th rank): black pawns
        * rows 2-5: empty
        * row 6 (2nd rank): white pawns
        * row 7 (1st rank): white pieces
        """
        board = cls.empty()
        for col in range(BOARD_SIZE):
            board.grid[0][col] = Piece(BACK_RANK_ORDER[col], Color.BLACK)
            board.grid[1][col] = Piece(PieceType.PAWN, Color.BLACK)
            board.grid[6][col] = Piece(PieceType.PAWN, Color.WHITE)
            board.grid[7][col] = Piece(BACK_RANK_ORDER[col], Color.WHITE)
        return board

    def piece_at(self, square: Square) -> Piece | None:
        return self.grid[square.row][square.col]

    def place(self, square: Square, piece: Piece | None) -> None:
        self.grid[square.row][square.col] = piece

    def remove(self, square: Square) -> Piece | None:
        """Clear the square and hand back whatever was on it."""
        piece = self.piece_at(square)
        self.grid[square.row][square.col] = None
        return piece

    def count(self, color: Color) -> int:
        """Number of live pieces of the given color"""
        return sum(
            1
            for row in self.grid
            for piece in row
            if piece is not None and piece.color == color
        )
