"""
Application factory.

Run with:   uvicorn src.api.app:app

The Room Registry lives exactly as long as the application: it is cleared when the application stops.
Nothing survives a restart.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.models import ErrorResponse
from src.api.routes import health_router, router
from src.api.websocket import ConnectionManager
from src.api.websocket import router as websocket_router
from src.core.config import Settings
from src.core.exceptions import (
    SERVER_ERROR_CODE,
    GameError,
    GameStateError,
    InvalidMoveError,
    InvalidRequestError,
    NotYourTurnError,
    RoomFullError,
    RoomIdExhaustedError,
    RoomNotFoundError,
)
from src.rooms.registry import RoomRegistry

_log = logging.getLogger(__name__)

# Anything not listed (but still a GameError) is a 400
ERROR_STATUS_CODES: dict[type[GameError], int] = {
    RoomNotFoundError: status.HTTP_404_NOT_FOUND,
    RoomFullError: status.HTTP_409_CONFLICT,
    NotYourTurnError: status.HTTP_409_CONFLICT,
    GameStateError: status.HTTP_409_CONFLICT,
    InvalidMoveError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    InvalidRequestError: status.HTTP_422_UNPROCESSABLE_CONTENT,
    RoomIdExhaustedError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: GameError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


async def game_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # for the type checker: only registered for GameError
    assert isinstance(exc, GameError)
    _log.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    reason = getattr(exc, "reason", None)
    body = ErrorResponse(
        error=exc.code,
        message=str(exc),
        reason=str(reason) if reason is not None else None,
    )
    return JSONResponse(
        status_code=status_code_for(exc),
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _log.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ErrorResponse(error=SERVER_ERROR_CODE, message="Internal server error.")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None, registry: Optional[RoomRegistry] = None
) -> FastAPI:
    """
    Build the application.
    ----
    Pass a registry to share it with something else (tests). Otherwise one gets created from the settings.
    """
    settings = settings if settings is not None else Settings.from_env()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        _log.info("Starting chess room server")
        yield
        app.state.registry.clear()
        _log.info("Chess room server stopped")

    app = FastAPI(title="Chess Rooms", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = (
        registry if registry is not None else RoomRegistry.from_settings(settings)
    )
    app.state.connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GameError, game_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    app.include_router(health_router)
    app.include_router(router)
    app.include_router(websocket_router)
    return app


app = create_app()
