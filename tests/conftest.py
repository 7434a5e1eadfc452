"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures required for testing multiple layers.
"""

from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.core.config import Settings
from src.rooms.registry import RoomRegistry
from src.rooms.room import Player, Room

TEST_SETTINGS = Settings(log_level="DEBUG", poll_interval_seconds=0.5)

SeatedRoom = tuple[str, Player, Player]


@pytest.fixture
def registry() -> RoomRegistry:
    """Fresh registry for every test: rooms never leak between tests."""
    return RoomRegistry()


@pytest.fixture
def playing_room(registry: RoomRegistry) -> SeatedRoom:
    """Room where Alice (white) and Bob (black) both sat down. White to move."""
    room, alice = registry.create_room("Alice")
    _, bob = registry.join_room(room.id, "Bob")
    return room.id, alice, bob


@pytest.fixture
def make_room(registry: RoomRegistry) -> Callable[..., Room]:
    """Call the inner function with the player names that should sit down (first one is white)."""

    def _make_room(*names: str) -> Room:
        room, _ = registry.create_room(names[0])
        for name in names[1:]:
            room, _ = registry.join_room(room.id, name)
        return room

    return _make_room


@pytest.fixture
def client(registry: RoomRegistry) -> Generator[TestClient, None, None]:
    """HTTP/websocket client against an app that shares the `registry` fixture."""
    app = create_app(settings=TEST_SETTINGS, registry=registry)
    with TestClient(app) as test_client:
        yield test_client
