"""
Position codec: algebraic square names ("e2") <-> grid coordinates (row, col).

(placed in its own module as multiple other modules need to import it)

Grid convention: row 0 is the 8th rank (top of the board as seen by white), row 7 is the 1st rank.
Columns 0..7 are the files a..h.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.exceptions import InvalidPositionError

# Chess board is always 8x8.
BOARD_SIZE = 8
FILES = "abcdefgh"


@dataclass(frozen=True)
class Square:
    row: int
    col: int

    def is_within_bounds(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    def to_algebraic(self) -> str:
        return encode(self.row, self.col)


def decode(square: str) -> Square | None:
    """
    'a8' -> (0, 0), 'h1' -> (7, 7).

    Returns None for anything that is not exactly a file letter followed by a rank digit on the board.
    Never raises, whatever it gets passed.
    """
    if not isinstance(square, str) or len(square) != 2:
        return None

    file_char, rank_char = square[0], square[1]
    # isdecimal() also rejects things like superscript digits that int() would choke on
    if not (rank_char.isascii() and rank_char.isdecimal()):
        return None

    col = ord(file_char) - ord("a")
    row = BOARD_SIZE - int(rank_char)
    decoded = Square(row, col)
    if not decoded.is_within_bounds():
        return None
    return decoded


def encode(row: int, col: int) -> str:
    """Inverse of decode: (6, 4) -> 'e2'"""
    if not Square(row, col).is_within_bounds():
        raise InvalidPositionError(f"({row}, {col}) is not a square on the board.")
    return f"{FILES[col]}{BOARD_SIZE - row}"

