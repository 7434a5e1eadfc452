"""
Request/response transport.

Clients poll GET /rooms/{room_id} to see the opponent's moves (at the interval advertised on GET /health).
Handlers are plain `def`: FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, status

from src.api.dependencies import RegistryDep, ServiceDep, SettingsDep
from src.api.models import (
    CreateRoomRequest,
    GetRoomRequest,
    HealthResponse,
    JoinRoomRequest,
    LeaveResponse,
    LeaveRoomRequest,
    MoveRequest,
    MoveResponse,
    RoomListResponse,
    RoomResponse,
)

router = APIRouter(prefix="/rooms", tags=["rooms"])
health_router = APIRouter(tags=["health"])


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(request: CreateRoomRequest, service: ServiceDep) -> RoomResponse:
    return service.create_room(request)


@router.get("", response_model=RoomListResponse)
def list_rooms(service: ServiceDep) -> RoomListResponse:
    return service.list_rooms()


@router.post("/join", response_model=RoomResponse)
def join_room(request: JoinRoomRequest, service: ServiceDep) -> RoomResponse:
    return service.join_room(request)


@router.post("/move", response_model=MoveResponse)
def make_move(request: MoveRequest, service: ServiceDep) -> MoveResponse:
    return service.make_move(request)


@router.post("/leave", response_model=LeaveResponse)
def leave_room(request: LeaveRoomRequest, service: ServiceDep) -> LeaveResponse:
    return service.leave_room(request)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: str, service: ServiceDep) -> RoomResponse:
    return service.get_room(GetRoomRequest(room_id=room_id))


@health_router.get("/health", response_model=HealthResponse)
def health(registry: RegistryDep, settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        rooms=len(registry), poll_interval_seconds=settings.poll_interval_seconds
    )
