"""
Configuration loaded from environment variables.

CHESS_ROOM_ID_LENGTH         length of generated room ids (default 9)
CHESS_ROOM_ID_ATTEMPTS       how many ids to try before giving up on a collision (default 10)
CHESS_LOG_LEVEL              logging level name (default INFO)
CHESS_CORS_ORIGINS           comma separated list of allowed origins (default *)
CHESS_POLL_INTERVAL_SECONDS  polling cadence advertised to request/response clients (default 2.0)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Self

ENV_PREFIX = "CHESS_"


def _positive_int(name: str, raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}")
    return value


def _positive_float(name: str, raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _log_level(name: str, raw: str) -> str:
    level = raw.strip().upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"{name} is not a logging level: {raw!r}")
    return level


@dataclass(frozen=True)
class Settings:
    room_id_length: int = 9
    room_id_attempts: int = 10
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = field(default=("*",))
    poll_interval_seconds: float = 2.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        """Read settings from the environment, falling back to the defaults above."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def _get(key: str) -> str | None:
            return env.get(f"{ENV_PREFIX}{key}")

        room_id_length = _get("ROOM_ID_LENGTH")
        room_id_attempts = _get("ROOM_ID_ATTEMPTS")
        log_level = _get("LOG_LEVEL")
        cors_origins = _get("CORS_ORIGINS")
        poll_interval = _get("POLL_INTERVAL_SECONDS")

        return cls(
            room_id_length=(
                _positive_int("ROOM_ID_LENGTH", room_id_length)
                if room_id_length
                else defaults.room_id_length
            ),
            room_id_attempts=(
                _positive_int("ROOM_ID_ATTEMPTS", room_id_attempts)
                if room_id_attempts
                else defaults.room_id_attempts
            ),
            log_level=(
                _log_level("LOG_LEVEL", log_level) if log_level else defaults.log_level
            ),
            cors_origins=(
                tuple(o.strip() for o in cors_origins.split(",") if o.strip())
                if cors_origins
                else defaults.cors_origins
            ),
            poll_interval_seconds=(
                _positive_float("POLL_INTERVAL_SECONDS", poll_interval)
                if poll_interval
                else defaults.poll_interval_seconds
            ),
        )
