"""Room schemas for request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CreateRoomRequest(BaseModel):
    """Schema for opening a room."""

    player_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field("Host", min_length=1, max_length=50)


class JoinRoomRequest(BaseModel):
    """Schema for joining a room by code."""

    player_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field("Player", min_length=1, max_length=50)


class LeaveRoomRequest(BaseModel):
    player_id: str = Field(..., min_length=1, max_length=64)


class ReadyRequest(BaseModel):
    player_id: str = Field(..., min_length=1, max_length=64)
    is_ready: bool = True


class RoomPlayerResponse(BaseModel):
    """Schema for a player seated in a room."""

    player_id: str
    name: str
    is_ready: bool
    is_host: bool
    joined_at: datetime

    class Config:
        from_attributes = True


class RoomResponse(BaseModel):
    """Schema for room response."""

    code: str
    host_id: str
    max_players: int
    players: list[RoomPlayerResponse]
    game_state: str
    game_id: Optional[str] = None
    all_ready: bool

    class Config:
        from_attributes = True


class LeaveRoomResponse(BaseModel):
    room_deleted: bool
    room: Optional[RoomResponse] = None
