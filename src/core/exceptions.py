"""
Custom exceptions.

Every exception carries a `code`: the stable name the transport layer puts on the wire.
"""


class GameError(Exception):
    """Root of all recoverable, user-facing errors."""

    code = "GameError"


# --- Board / move level ---
class InvalidPositionError(GameError):
    code = "InvalidPosition"


class InvalidPieceError(GameError):
    code = "InvalidPiece"


class InvalidMoveError(GameError):
    """Move rejected by the validator. `reason` is the validator's own reason code."""

    code = "InvalidMove"

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


# --- Room level ---
class RoomNotFoundError(GameError):
    code = "RoomNotFound"


class RoomFullError(GameError):
    code = "RoomFull"


class NotYourTurnError(GameError):
    code = "NotYourTurn"


class GameStateError(GameError):
    """Action not allowed in the room's current status."""

    code = "GameState"


class RoomIdExhaustedError(GameError):
    """Could not find a free room id within the configured number of attempts."""

    code = "RoomIdExhausted"


# --- Transport level ---
class InvalidRequestError(GameError):
    """
    Raised by request model validators.
    NOTE: must not subclass ValueError, otherwise pydantic wraps it in a ValidationError.
    """

    code = "InvalidRequest"


SERVER_ERROR_CODE = "ServerError"
