"""Room and Player entities. A Room is one match: at most two players sharing one GameState."""

import threading
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Self

from src.chess.game_state import GameState
from src.core.shared_types import Color, RoomStatus

MAX_PLAYERS = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Player:
    id: str
    name: str
    color: Color
    # Opaque handle of the transport connection the player acts through (websocket id, ...). None for request/response clients.
    connection_ref: Optional[str] = None


@dataclass
class Room:
    id: str
    players: list[Player]
    game_state: GameState
    current_player: Color = Color.WHITE
    status: RoomStatus = RoomStatus.WAITING
    created_at: datetime = field(default_factory=utc_now)
    winner: Optional[Color] = None
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False, compare=False
    )

    @property
    def lock(self) -> threading.RLock:
        """Held for the whole read-validate-apply-snapshot sequence of any mutation on this room."""
        return self._lock

    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    def is_empty(self) -> bool:
        return not self.players

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def free_color(self) -> Color:
        """
        Color for the next player to sit down.
        First player is white, second black. If white left a running game, the newcomer takes over white.
        This departs from a strict "second player is always black, colors are never reassigned" rule:
        a seat freed mid-game is handed to the next joiner instead of leaving the room unjoinable.
        The room also drops back to waiting while the seat is free (see RoomRegistry._remove_player).
        """
        taken = {p.color for p in self.players}
        return Color.WHITE if Color.WHITE not in taken else Color.BLACK

    def snapshot(self) -> Self:
        """Deep copy that shares nothing mutable (nor the lock) with the live room."""
        return type(self)(
            id=self.id,
            players=deepcopy(self.players),
            game_state=deepcopy(self.game_state),
            current_player=self.current_player,
            status=self.status,
            created_at=self.created_at,
            winner=self.winner,
        )

    def __deepcopy__(self, memo: dict) -> Self:
        # locks cannot be copied: a copy is a snapshot with a lock of its own
        return self.snapshot()
