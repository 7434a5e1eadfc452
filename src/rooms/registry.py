"""
The Room Registry: process-wide owner of every Room.

Concurrency
-----------
Actions for the same room can arrive at the same time (one per connected client, and FastAPI runs sync handlers in a threadpool).

* `_rooms_lock` only guards the id -> Room mapping, and is only ever held for a dict operation.
* every Room has its own lock, held for the full sequence of reading / validating / applying / snapshotting.
  Unrelated games never wait for each other.
* lock order: a room lock may be held while taking `_rooms_lock`, never the other way around.

Everything handed back to callers is a snapshot, so it can be serialized / broadcast after the lock has been released.
"""

import logging
import secrets
import string
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Self
from uuid import uuid4

from src.chess.game_state import GameState
from src.chess.moves import apply_move, validate_move
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
from src.core.models import MoveOutcome
from src.core.shared_types import Color, PieceType, RoomStatus, opponent
from src.rooms.room import Player, Room

_log = logging.getLogger(__name__)

ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits

RoomIdFactory = Callable[[int], str]


def random_room_id(length: int) -> str:
    """Short random alphanumeric token, e.g. 'k3x9q0z1m'"""
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(length))


def new_player_id() -> str:
    return uuid4().hex


class RoomRegistry:
    """Create / join / move / leave. Owns all rooms for the lifetime of the process (nothing is persisted)."""

    def __init__(
        self,
        id_length: int = 9,
        id_attempts: int = 10,
        id_factory: RoomIdFactory = random_room_id,
    ) -> None:
        self._rooms: dict[str, Room] = {}
        self._rooms_lock = threading.Lock()
        self._id_length = id_length
        self._id_attempts = id_attempts
        self._id_factory = id_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        return cls(
            id_length=settings.room_id_length, id_attempts=settings.room_id_attempts
        )

    def __len__(self) -> int:
        with self._rooms_lock:
            return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        with self._rooms_lock:
            return room_id in self._rooms

    # --- ACTIONS ---
    def create_room(
        self, player_name: str, connection_ref: Optional[str] = None
    ) -> tuple[Room, Player]:
        """New room with a single (white) player, waiting for an opponent."""
        player = Player(
            id=new_player_id(),
            name=player_name,
            color=Color.WHITE,
            connection_ref=connection_ref,
        )
        with self._rooms_lock:
            room_id = self._unused_room_id()
            room = Room(id=room_id, players=[player], game_state=GameState.new_game())
            self._rooms[room_id] = room
            snapshot = room.snapshot()

        _log.info("Room created: %s by %r", room_id, player_name)
        return snapshot, snapshot.players[0]

    def join_room(
        self, room_id: str, player_name: str, connection_ref: Optional[str] = None
    ) -> tuple[Room, Player]:
        """Second player sits down. The game starts."""
        with self._locked_room(room_id) as room:
            if room.is_full():
                _log.warning("Join rejected, room %s is full", room_id)
                raise RoomFullError(f"Room {room_id} is full.")
            if room.status == RoomStatus.FINISHED:
                raise GameStateError(f"Room {room_id} has finished. status: {room.status}")

            player = Player(
                id=new_player_id(),
                name=player_name,
                color=room.free_color(),
                connection_ref=connection_ref,
            )
            room.players.append(player)
            room.status = RoomStatus.PLAYING
            snapshot = room.snapshot()

        _log.info("Player %r joined room %s as %s", player_name, room_id, player.color)
        return snapshot, snapshot.players[-1]

    def make_move(
        self,
        room_id: str,
        from_square: str,
        to_square: str,
        acting_color: Optional[Color] = None,
        player_id: Optional[str] = None,
    ) -> MoveOutcome:
        """
        Attempt a move on behalf of the player with the `acting_color` pieces, or of the seated player `player_id`.
        ----

        0. the mover must be known: a player id resolves to its color, which a claimed color must agree with
        1. the game must be in progress
        2. it must be your turn
        3. the validator must accept the move
        4. apply it, flip the turn

        Any rejection leaves the room untouched.
        """
        with self._locked_room(room_id) as room:
            acting_color = self._acting_color(room, acting_color, player_id)
            if room.status != RoomStatus.PLAYING:
                _log.warning("Move rejected in room %s: status %s", room_id, room.status)
                raise GameStateError(f"Game is not in progress. status: {room.status}")

            if acting_color != room.current_player:
                _log.warning("Move rejected in room %s: not %s's turn", room_id, acting_color)
                raise NotYourTurnError(
                    f"It is not your turn. Waiting for {room.current_player} to make a move first."
                )

            validation = validate_move(room.game_state, from_square, to_square, acting_color)
            if not validation.valid:
                _log.warning(
                    "Move rejected in room %s: %s -> %s (%s)",
                    room_id,
                    from_square,
                    to_square,
                    validation.error,
                )
                raise InvalidMoveError(
                    f"Move not allowed: {from_square} -> {to_square} ({validation.error})",
                    reason=validation.error,
                )

            captured = apply_move(room.game_state, from_square, to_square)
            if captured is not None and captured.type == PieceType.KING:
                room.status = RoomStatus.FINISHED
                room.winner = acting_color
                _log.info("Room %s finished: %s captured the king", room_id, acting_color)
            room.current_player = opponent(room.current_player)

            snapshot = room.snapshot()
            return MoveOutcome(
                room_id=room_id,
                from_square=from_square,
                to_square=to_square,
                game_state=snapshot.game_state,
                current_player=snapshot.current_player,
                status=snapshot.status,
                captured=captured,
                winner=snapshot.winner,
            )

    def get_room(self, room_id: str) -> Room:
        with self._locked_room(room_id) as room:
            return room.snapshot()

    def list_rooms(self) -> list[Room]:
        rooms: list[Room] = []
        for room_id in self._room_ids():
            try:
                rooms.append(self.get_room(room_id))
            except RoomNotFoundError:
                # destroyed in the meantime
                continue
        return rooms

    def leave_room(self, room_id: str, player_id: str) -> Optional[Room]:
        """
        Remove a player. Returns the room as the remaining player sees it, or None when the room got destroyed (or never existed).
        Leaving never fails.
        """
        try:
            with self._locked_room(room_id) as room:
                return self._remove_player(room, player_id)
        except RoomNotFoundError:
            return None

    def disconnect(self, connection_ref: str) -> list[tuple[str, Optional[Room]]]:
        """
        A transport connection dropped: remove its player(s) from every room.
        Returns (room_id, remaining room or None if destroyed) for every room that was affected.
        """
        affected: list[tuple[str, Optional[Room]]] = []
        for room_id in self._room_ids():
            try:
                with self._locked_room(room_id) as room:
                    leaving = [p.id for p in room.players if p.connection_ref == connection_ref]
                    if not leaving:
                        continue
                    remaining: Optional[Room] = None
                    for player_id in leaving:
                        remaining = self._remove_player(room, player_id)
                    affected.append((room_id, remaining))
            except RoomNotFoundError:
                continue
        return affected

    def clear(self) -> None:
        """Drop every room (process shutdown)."""
        with self._rooms_lock:
            count = len(self._rooms)
            self._rooms.clear()
        _log.info("Registry cleared, %d room(s) dropped", count)

    # --- PRIVATE HELPERS ---
    @contextmanager
    def _locked_room(self, room_id: str) -> Iterator[Room]:
        """Find the room and hold its lock. Raises RoomNotFoundError if it does not exist (anymore)."""
        room = self._lookup(room_id)
        with room.lock:
            # the room may have been destroyed while waiting for its lock
            with self._rooms_lock:
                still_registered = self._rooms.get(room_id) is room
            if not still_registered:
                raise RoomNotFoundError(f"Room {room_id!r} not found.")
            yield room

    def _lookup(self, room_id: str) -> Room:
        with self._rooms_lock:
            room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id!r} not found.")
        return room

    def _room_ids(self) -> list[str]:
        with self._rooms_lock:
            return list(self._rooms.keys())

    def _unused_room_id(self) -> str:
        """NOTE: caller must hold _rooms_lock"""
        for _ in range(self._id_attempts):
            candidate = self._id_factory(self._id_length)
            if candidate not in self._rooms:
                return candidate
            _log.warning("Room id collision on %s, generating a new one", candidate)
        raise RoomIdExhaustedError(
            f"No unused room id found after {self._id_attempts} attempts."
        )

    def _acting_color(
        self, room: Room, claimed: Optional[Color], player_id: Optional[str]
    ) -> Color:
        """NOTE: caller must hold the room's lock"""
        if player_id is None:
            if claimed is None:
                raise InvalidRequestError("Either a player id or a player color is required.")
            return claimed

        player = room.find_player(player_id)
        if player is None:
            raise InvalidRequestError(
                f"Player {player_id!r} is not seated in room {room.id!r}."
            )
        if claimed is not None and claimed != player.color:
            raise InvalidRequestError(
                f"Player {player_id!r} plays {player.color}, not {claimed}."
            )
        return player.color

    def _remove_player(self, room: Room, player_id: str) -> Optional[Room]:
        """NOTE: caller must hold the room's lock"""
        player = room.find_player(player_id)
        if player is None:
            return room.snapshot()

        room.players.remove(player)
        _log.info("Player %r left room %s", player.name, room.id)

        if room.is_empty():
            with self._rooms_lock:
                self._rooms.pop(room.id, None)
            _log.info("Room destroyed: %s", room.id)
            return None

        # a half-empty game waits for a replacement opponent
        if room.status == RoomStatus.PLAYING:
            room.status = RoomStatus.WAITING
        return room.snapshot()
