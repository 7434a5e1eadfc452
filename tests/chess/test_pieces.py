"""Unit tests for /src/chess/pieces.py and /src/chess/game_state.py"""

from src.chess.game_state import CapturedPieces, GameState
from src.chess.pieces import Piece
from src.core.shared_types import Color, PieceType, opponent


def test_new_piece_has_not_moved() -> None:
    """Pieces start unmoved."""
    piece = Piece(PieceType.KNIGHT, Color.WHITE)
    assert not piece.has_moved
    piece.mark_moved()
    assert piece.has_moved
    assert (piece.type, piece.color) == (PieceType.KNIGHT, Color.WHITE)


def test_opponent() -> None:
    """White plays black and the other way around."""
    assert opponent(Color.WHITE) == Color.BLACK
    assert opponent(Color.BLACK) == Color.WHITE


def test_captured_pieces_keyed_by_captured_color() -> None:
    """A captured piece is filed under its own color."""
    captured = CapturedPieces()
    white_rook = Piece(PieceType.ROOK, Color.WHITE)
    black_pawn = Piece(PieceType.PAWN, Color.BLACK)
    black_queen = Piece(PieceType.QUEEN, Color.BLACK)

    captured.record(black_pawn)
    captured.record(white_rook)
    captured.record(black_queen)

    assert captured.white == [white_rook]
    assert captured.black == [black_pawn, black_queen]
    assert captured.of(Color.BLACK) is captured.black


def test_new_game_state() -> None:
    """A new game starts from the standard position with no history."""
    state = GameState.new_game()
    assert state.last_move is None
    assert state.move_history == []
    assert state.captured_pieces == CapturedPieces()
    assert state.board.count(Color.WHITE) == state.board.count(Color.BLACK) == 16
