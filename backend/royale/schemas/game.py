"""Game schemas for request/response validation."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class StartGameRequest(BaseModel):
    """Schema for starting a game in the caller's room."""

    player_id: str = Field(..., min_length=1, max_length=64)


class SubmitCodeRequest(BaseModel):
    """Schema for storing test code."""

    player_id: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., min_length=1, max_length=100000)


class CalculateRequest(BaseModel):
    """Schema for scoring a player; ``code`` replaces the stored submission."""

    player_id: str = Field(..., min_length=1, max_length=64)
    code: Optional[str] = Field(None, max_length=100000)


class ChallengeResponse(BaseModel):
    id: str
    title: str
    description: str
    reference_code: str
    test_template: Optional[str] = None
    language: str
    time_limit_seconds: int

    class Config:
        from_attributes = True


class GameResponse(BaseModel):
    """Schema for game session response."""

    id: str
    room_code: str
    challenge: ChallengeResponse
    state: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    winner: Optional[str] = None
    total_duration_seconds: int
    entries: list[dict[str, Any]]


class SubmissionResponse(BaseModel):
    """Schema for a stored submission."""

    game_id: str
    player_id: str
    code: str
    submitted_at: Optional[datetime] = None


class CalculateResponse(BaseModel):
    """Schema for a pipeline run; ``error`` names the failed stage."""

    ok: bool
    entry: dict[str, Any]
    error: Optional[dict[str, Any]] = None


class GameResultsResponse(BaseModel):
    """Schema for ranked game results."""

    game_id: str
    room_code: str
    challenge_id: str
    state: str
    winner: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    total_duration_seconds: int
    players: list[dict[str, Any]]
