"""FastAPI dependencies: the registry lives on the application, handlers get a RoomService around it."""

from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection

from src.core.config import Settings
from src.rooms.registry import RoomRegistry
from src.services.room_service import RoomService


def get_registry(connection: HTTPConnection) -> RoomRegistry:
    return connection.app.state.registry


def get_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_service(
    registry: Annotated[RoomRegistry, Depends(get_registry)],
) -> RoomService:
    return RoomService(registry)


RegistryDep = Annotated[RoomRegistry, Depends(get_registry)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
ServiceDep = Annotated[RoomService, Depends(get_service)]
