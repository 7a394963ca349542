"""Errors raised by game session, room and player operations."""


class GameError(Exception):
    """Base class for orchestration errors; ``status_code`` guides the API layer."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PlayerNotFoundError(GameError):
    status_code = 404


class RoomNotFoundError(GameError):
    status_code = 404


class GameNotFoundError(GameError):
    status_code = 404


class ChallengeNotFoundError(GameError):
    status_code = 404


class SubmissionNotFoundError(GameError):
    status_code = 404


class RoomStateError(GameError):
    status_code = 409


class RoomFullError(GameError):
    status_code = 409


class GameAlreadyActiveError(GameError):
    status_code = 409


class InvalidTransitionError(GameError):
    """A session state change that does not follow waiting -> playing -> finished."""

    status_code = 409


class NotEnoughPlayersError(GameError):
    pass


class PlayersNotReadyError(GameError):
    pass


class EmptySubmissionError(GameError):
    pass


class NotAParticipantError(GameError):
    status_code = 403
