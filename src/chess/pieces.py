"""Defines the chess pieces"""

from dataclasses import dataclass

from src.core.shared_types import Color, PieceType

# Order of the pieces on the first / last rank, read from the a-file to the h-file
BACK_RANK_ORDER: tuple[PieceType, ...] = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)


@dataclass
class Piece:
    type: PieceType
    color: Color
    has_moved: bool = False

    def mark_moved(self) -> None:
        # NOTE: the only attribute allowed to change after creation
        self.has_moved = True
