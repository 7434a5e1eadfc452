"""
Type definitions used across layers
"""

from enum import StrEnum


class RoomStatus(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


# --- StrEnum so the values go over the wire as-is ("white", "pawn", ...)


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"


class PieceType(StrEnum):
    PAWN = "pawn"
    ROOK = "rook"
    KNIGHT = "knight"
    BISHOP = "bishop"
    QUEEN = "queen"
    KING = "king"


def opponent(color: Color) -> Color:
    return Color.BLACK if color == Color.WHITE else Color.WHITE
