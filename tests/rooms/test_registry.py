"""Unit tests for src/rooms/registry.py"""

import threading
import time
from copy import deepcopy
from typing import Callable

import pytest

from src.chess.moves import MoveError
from src.chess.square import decode
from src.core.config import Settings
from src.core.exceptions import (
    GameStateError,
    InvalidMoveError,
    InvalidRequestError,
    NotYourTurnError,
    RoomFullError,
    RoomIdExhaustedError,
    RoomNotFoundError,
)
from src.core.shared_types import Color, PieceType, RoomStatus
from src.rooms.registry import ROOM_ID_ALPHABET, RoomRegistry, random_room_id
from src.rooms.room import Player, Room

SeatedRoom = tuple[str, Player, Player]


# --- CREATE ---
def test_create_room(registry: RoomRegistry) -> None:
    """The creator is seated on white in a waiting room."""
    room, player = registry.create_room("Alice")

    assert room.id in registry
    assert len(registry) == 1
    assert room.status == RoomStatus.WAITING
    assert room.current_player == Color.WHITE
    assert [p.name for p in room.players] == ["Alice"]
    assert player.color == Color.WHITE
    assert room.players[0] == player
    assert room.game_state.board.count(Color.WHITE) == 16
    assert room.winner is None


def test_room_ids_are_short_alphanumeric_tokens(registry: RoomRegistry) -> None:
    """Room ids are nine lowercase alphanumerics."""
    ids = {registry.create_room(f"player {i}")[0].id for i in range(50)}
    assert len(ids) == 50
    for room_id in ids:
        assert len(room_id) == 9
        assert set(room_id) <= set(ROOM_ID_ALPHABET)


def test_random_room_id_length() -> None:
    """Generated ids have the requested length."""
    assert len(random_room_id(4)) == 4


def test_room_id_collision_is_retried() -> None:
    """The factory hands out 'taken' twice before a fresh id: no room gets overwritten."""
    ids = iter(["taken", "taken", "taken", "fresh"])
    registry = RoomRegistry(id_factory=lambda _length: next(ids))

    first, _ = registry.create_room("Alice")
    second, _ = registry.create_room("Bob")

    assert first.id == "taken"
    assert second.id == "fresh"
    assert registry.get_room("taken").players[0].name == "Alice"


def test_room_id_attempts_exhausted() -> None:
    """An id factory that only collides runs out of attempts."""
    registry = RoomRegistry(id_attempts=3, id_factory=lambda _length: "same")
    registry.create_room("Alice")
    with pytest.raises(RoomIdExhaustedError):
        registry.create_room("Bob")
    assert len(registry) == 1


def test_from_settings() -> None:
    """Id length and attempts come from the settings."""
    registry = RoomRegistry.from_settings(Settings(room_id_length=5))
    room, _ = registry.create_room("Alice")
    assert len(room.id) == 5


# --- JOIN ---
def test_join_room(registry: RoomRegistry) -> None:
    """The second player gets black and the game starts."""
    room, alice = registry.create_room("Alice")
    joined, bob = registry.join_room(room.id, "Bob")

    assert joined.status == RoomStatus.PLAYING
    assert bob.color == Color.BLACK
    assert [(p.name, p.color) for p in joined.players] == [
        ("Alice", Color.WHITE),
        ("Bob", Color.BLACK),
    ]
    assert alice.id != bob.id


def test_third_player_cannot_join(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """A room never holds more than two players."""
    room_id, _, _ = playing_room
    with pytest.raises(RoomFullError):
        registry.join_room(room_id, "Carol")
    assert len(registry.get_room(room_id).players) == 2


def test_join_unknown_room(registry: RoomRegistry) -> None:
    """Joining a missing room is RoomNotFound."""
    with pytest.raises(RoomNotFoundError):
        registry.join_room("nope", "Bob")


def test_concurrent_joins_never_exceed_two_players(registry: RoomRegistry) -> None:
    """Racing joins seat exactly one newcomer."""
    room, _ = registry.create_room("Alice")
    barrier = threading.Barrier(8)
    results: list[str] = []

    def _join(name: str) -> None:
        barrier.wait()
        try:
            registry.join_room(room.id, name)
            results.append("joined")
        except RoomFullError:
            results.append("full")

    threads = [threading.Thread(target=_join, args=(f"p{i}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count("joined") == 1
    assert results.count("full") == 7
    assert len(registry.get_room(room.id).players) == 2


# --- MOVES ---
def test_first_move(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """White opens, the turn passes to black."""
    room_id, _, _ = playing_room
    outcome = registry.make_move(room_id, "e2", "e4", Color.WHITE)

    assert outcome.current_player == Color.BLACK
    assert outcome.status == RoomStatus.PLAYING
    assert outcome.captured is None
    last_move = outcome.game_state.last_move
    assert last_move is not None
    assert (last_move.from_square, last_move.to_square) == ("e2", "e4")
    assert (last_move.piece.type, last_move.piece.color) == (PieceType.PAWN, Color.WHITE)

    room = registry.get_room(room_id)
    assert room.current_player == Color.BLACK
    assert room.game_state.board.piece_at(decode("e2")) is None
    assert room.game_state.board.piece_at(decode("e4")) is not None


def test_turns_alternate(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """Colors alternate move after move."""
    room_id, _, _ = playing_room
    registry.make_move(room_id, "e2", "e4", Color.WHITE)
    registry.make_move(room_id, "e7", "e5", Color.BLACK)
    outcome = registry.make_move(room_id, "g1", "f3", Color.WHITE)
    assert outcome.current_player == Color.BLACK
    assert outcome.game_state.move_history == ["e2e4", "e7e5", "g1f3"]


def test_move_by_player_id(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """A seated player moves with the color they sat down with."""
    room_id, alice, bob = playing_room
    registry.make_move(room_id, "e2", "e4", player_id=alice.id)
    outcome = registry.make_move(room_id, "e7", "e5", player_id=bob.id)
    assert outcome.current_player == Color.WHITE
    assert outcome.game_state.move_history == ["e2e4", "e7e5"]


@pytest.mark.parametrize(
    "player, claimed",
    [
        ("stranger", None),
        ("bob", Color.WHITE),
    ],
)
def test_unresolvable_mover(
    playing_room: SeatedRoom, registry: RoomRegistry, player: str, claimed: Color | None
) -> None:
    """Unknown player ids and colors contradicting the seat are rejected before anything moves."""
    room_id, _, bob = playing_room
    player_id = bob.id if player == "bob" else "stranger"
    _assert_rejected_without_mutation(
        registry,
        room_id,
        lambda: registry.make_move(room_id, "e2", "e4", claimed, player_id=player_id),
        InvalidRequestError,
    )


def test_mover_is_required(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    room_id, _, _ = playing_room
    with pytest.raises(InvalidRequestError):
        registry.make_move(room_id, "e2", "e4")


def _assert_rejected_without_mutation(
    registry: RoomRegistry, room_id: str, attempt: Callable[[], object], error: type[Exception]
) -> None:
    before = registry.get_room(room_id)
    with pytest.raises(error):
        attempt()
    after = registry.get_room(room_id)
    assert after.game_state == before.game_state
    assert after.current_player == before.current_player
    assert after.status == before.status


def test_not_your_turn(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """Black cannot open the game."""
    room_id, _, _ = playing_room
    _assert_rejected_without_mutation(
        registry,
        room_id,
        lambda: registry.make_move(room_id, "e7", "e5", Color.BLACK),
        NotYourTurnError,
    )


@pytest.mark.parametrize(
    "from_square, to_square, reason",
    [
        ("e4", "e5", MoveError.INVALID_PIECE),  # empty square
        ("e7", "e5", MoveError.INVALID_PIECE),  # black pawn, white to move
        ("z9", "e4", MoveError.INVALID_POSITION),
        ("e2", "a0", MoveError.INVALID_POSITION),
    ],
)
def test_invalid_move(
    playing_room: SeatedRoom,
    registry: RoomRegistry,
    from_square: str,
    to_square: str,
    reason: MoveError,
) -> None:
    """Validator rejections surface with their reason and change nothing."""
    room_id, _, _ = playing_room
    before = registry.get_room(room_id)
    with pytest.raises(InvalidMoveError) as exc_info:
        registry.make_move(room_id, from_square, to_square, Color.WHITE)
    assert exc_info.value.reason == reason

    after = registry.get_room(room_id)
    assert after.game_state == before.game_state
    assert after.current_player == Color.WHITE


def test_move_before_opponent_joined(registry: RoomRegistry) -> None:
    """A waiting room takes no moves."""
    room, _ = registry.create_room("Alice")
    _assert_rejected_without_mutation(
        registry,
        room.id,
        lambda: registry.make_move(room.id, "e2", "e4", Color.WHITE),
        GameStateError,
    )


def test_move_in_unknown_room(registry: RoomRegistry) -> None:
    with pytest.raises(RoomNotFoundError):
        registry.make_move("nope", "e2", "e4", Color.WHITE)


def test_capture_is_recorded(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """The captured piece lands in its color's list."""
    room_id, _, _ = playing_room
    outcome = registry.make_move(room_id, "d1", "d7", Color.WHITE)

    assert outcome.captured is not None
    assert outcome.captured.type == PieceType.PAWN
    assert [p.type for p in outcome.game_state.captured_pieces.black] == [PieceType.PAWN]
    assert outcome.game_state.board.count(Color.BLACK) == 15


def test_king_capture_finishes_the_game(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """Taking the king ends the game, the capturer wins."""
    room_id, _, _ = playing_room
    registry.make_move(room_id, "d1", "d7", Color.WHITE)
    registry.make_move(room_id, "a7", "a6", Color.BLACK)
    outcome = registry.make_move(room_id, "d7", "e8", Color.WHITE)

    assert outcome.status == RoomStatus.FINISHED
    assert outcome.winner == Color.WHITE
    assert registry.get_room(room_id).status == RoomStatus.FINISHED

    # no more moves once finished
    with pytest.raises(GameStateError):
        registry.make_move(room_id, "a6", "a5", Color.BLACK)


def test_returned_snapshots_are_detached(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """Mutating what the registry hands out never touches the live room."""
    room_id, _, _ = playing_room
    snapshot = registry.get_room(room_id)
    snapshot.game_state.board.grid[6][4] = None
    snapshot.players.clear()
    snapshot.current_player = Color.BLACK

    live = registry.get_room(room_id)
    assert live.game_state.board.grid[6][4] is not None
    assert len(live.players) == 2
    assert live.current_player == Color.WHITE


def test_concurrent_moves_are_serialized(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """
    16 threads, one per pawn, all hammering the same room: every pawn steps forward once.
    Turn order must hold, and no move may get lost or applied twice.
    """
    room_id, _, _ = playing_room
    barrier = threading.Barrier(16)
    deadline = time.monotonic() + 30

    def _push_pawn(color: Color, file: str) -> None:
        from_rank, to_rank = ("2", "3") if color == Color.WHITE else ("7", "6")
        barrier.wait()
        while time.monotonic() < deadline:
            try:
                registry.make_move(room_id, f"{file}{from_rank}", f"{file}{to_rank}", color)
                return
            except NotYourTurnError:
                time.sleep(0)

    threads = [
        threading.Thread(target=_push_pawn, args=(color, file))
        for color in (Color.WHITE, Color.BLACK)
        for file in "abcdefgh"
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    room = registry.get_room(room_id)
    history = room.game_state.move_history
    assert len(history) == len(set(history)) == 16
    # strict alternation: white, black, white, ...
    for index, move in enumerate(history):
        assert move[1] == ("2" if index % 2 == 0 else "7")
    assert room.game_state.board.count(Color.WHITE) == 16
    assert room.game_state.board.count(Color.BLACK) == 16
    assert room.current_player == Color.WHITE


# --- GET / LIST ---
def test_get_unknown_room(registry: RoomRegistry) -> None:
    with pytest.raises(RoomNotFoundError):
        registry.get_room("nope")


def test_list_rooms(make_room: Callable[..., Room], registry: RoomRegistry) -> None:
    """Every registered room is listed."""
    waiting = make_room("Alice")
    playing = make_room("Carol", "Dave")
    rooms = {room.id: room for room in registry.list_rooms()}
    assert rooms[waiting.id].status == RoomStatus.WAITING
    assert rooms[playing.id].status == RoomStatus.PLAYING


# --- LEAVE / DISCONNECT ---
def test_last_player_leaving_destroys_room(registry: RoomRegistry) -> None:
    """An empty room is gone for good."""
    room, alice = registry.create_room("Alice")
    assert registry.leave_room(room.id, alice.id) is None
    assert room.id not in registry
    with pytest.raises(RoomNotFoundError):
        registry.get_room(room.id)


def test_leaving_mid_game(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """Remaining player waits for a new opponent, who takes the free color."""
    room_id, alice, bob = playing_room
    registry.make_move(room_id, "e2", "e4", Color.WHITE)

    remaining = registry.leave_room(room_id, alice.id)
    assert remaining is not None
    assert [p.name for p in remaining.players] == ["Bob"]
    assert remaining.status == RoomStatus.WAITING

    room, carol = registry.join_room(room_id, "Carol")
    assert carol.color == Color.WHITE
    assert room.status == RoomStatus.PLAYING
    # game continues where it was
    assert room.game_state.move_history == ["e2e4"]
    assert room.current_player == Color.BLACK

    registry.leave_room(room_id, bob.id)
    assert registry.leave_room(room_id, carol.id) is None
    assert room_id not in registry


def test_leave_never_fails(playing_room: SeatedRoom, registry: RoomRegistry) -> None:
    """Unknown rooms and players are ignored on leave."""
    room_id, _, _ = playing_room
    assert registry.leave_room("nope", "nobody") is None
    remaining = registry.leave_room(room_id, "nobody")
    assert remaining is not None
    assert len(remaining.players) == 2


def test_disconnect_removes_players_bound_to_connection(registry: RoomRegistry) -> None:
    """A dropped connection unseats its player everywhere."""
    solo, _ = registry.create_room("Alice", connection_ref="conn-a")
    shared, _ = registry.create_room("Bob", connection_ref="conn-b")
    registry.join_room(shared.id, "Alice again", connection_ref="conn-a")

    affected = dict(registry.disconnect("conn-a"))

    assert set(affected) == {solo.id, shared.id}
    assert affected[solo.id] is None
    assert solo.id not in registry
    remaining = affected[shared.id]
    assert remaining is not None
    assert [p.name for p in remaining.players] == ["Bob"]

    assert registry.disconnect("conn-unknown") == []


def test_clear(make_room: Callable[..., Room], registry: RoomRegistry) -> None:
    make_room("Alice")
    make_room("Bob", "Carol")
    registry.clear()
    assert len(registry) == 0


def test_rooms_can_be_deep_copied(registry: RoomRegistry) -> None:
    """A deep copy is a snapshot with its own lock."""
    room, _ = registry.create_room("Alice")
    copied = deepcopy(room)
    assert copied.id == room.id
    assert copied.game_state == room.game_state
    assert copied.lock is not room.lock
