# Core module
from .errors import (
    ChallengeNotFoundError,
    EmptySubmissionError,
    GameAlreadyActiveError,
    GameError,
    GameNotFoundError,
    InvalidTransitionError,
    NotAParticipantError,
    NotEnoughPlayersError,
    PlayerNotFoundError,
    PlayersNotReadyError,
    RoomFullError,
    RoomNotFoundError,
    RoomStateError,
    SubmissionNotFoundError,
)
from .game import Challenge, GameSession, GameState, PlayerGameEntry
from .player import PlayerProfile
from .room import Room, RoomPlayer

__all__ = [
    "ChallengeNotFoundError",
    "EmptySubmissionError",
    "GameAlreadyActiveError",
    "GameError",
    "GameNotFoundError",
    "InvalidTransitionError",
    "NotAParticipantError",
    "NotEnoughPlayersError",
    "PlayerNotFoundError",
    "PlayersNotReadyError",
    "RoomFullError",
    "RoomNotFoundError",
    "RoomStateError",
    "SubmissionNotFoundError",
    "Challenge",
    "GameSession",
    "GameState",
    "PlayerGameEntry",
    "PlayerProfile",
    "Room",
    "RoomPlayer",
]
