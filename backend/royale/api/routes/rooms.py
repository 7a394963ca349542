"""Room routes for gathering players before a game."""

import logging

from fastapi import APIRouter, status

from royale.api.deps import Games, Rooms
from royale.core.room import Room
from royale.schemas.room import (
    CreateRoomRequest,
    JoinRoomRequest,
    LeaveRoomRequest,
    LeaveRoomResponse,
    ReadyRequest,
    RoomResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["Rooms"])


def room_response(room: Room) -> RoomResponse:
    return RoomResponse(**room.to_dict(), all_ready=room.all_ready)


@router.post(
    "",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_room(request: CreateRoomRequest, rooms: Rooms, games: Games) -> RoomResponse:
    """Open a room with the caller as host."""
    await games.ensure_player(request.player_id, request.name)
    room = rooms.create_room(request.player_id, request.name)
    games.publisher.publish(room.code, "room_created", room.to_dict())
    return room_response(room)


@router.post("/{room_code}/join", response_model=RoomResponse)
async def join_room(room_code: str, request: JoinRoomRequest, rooms: Rooms, games: Games) -> RoomResponse:
    """Join a waiting room by its code."""
    await games.ensure_player(request.player_id, request.name)
    room = rooms.join_room(request.player_id, room_code.upper(), request.name)
    games.publisher.publish(room.code, "player_joined", {"player_id": request.player_id, "name": request.name})
    return room_response(room)


@router.post("/leave", response_model=LeaveRoomResponse)
async def leave_room(request: LeaveRoomRequest, rooms: Rooms, games: Games) -> LeaveRoomResponse:
    """Leave the caller's room; the last player out closes it."""
    room_code = rooms.get_player_room(request.player_id).code
    room = rooms.leave_room(request.player_id)
    games.publisher.publish(room_code, "player_left", {"player_id": request.player_id})

    if room is None:
        return LeaveRoomResponse(room_deleted=True)
    return LeaveRoomResponse(room_deleted=False, room=room_response(room))


@router.post("/ready", response_model=RoomResponse)
async def set_ready(request: ReadyRequest, rooms: Rooms, games: Games) -> RoomResponse:
    room = rooms.set_ready(request.player_id, request.is_ready)
    games.publisher.publish(
        room.code,
        "player_ready",
        {"player_id": request.player_id, "is_ready": request.is_ready, "all_ready": room.all_ready},
    )
    return room_response(room)


@router.get("/{room_code}", response_model=RoomResponse)
async def get_room(room_code: str, rooms: Rooms) -> RoomResponse:
    return room_response(rooms.get_room(room_code.upper()))
