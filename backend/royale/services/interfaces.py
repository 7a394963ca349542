"""Collaborators the game service depends on."""

from typing import Optional, Protocol

from royale.core.game import Challenge, GameSession
from royale.core.player import PlayerProfile
from royale.engine.results import Outcome, PipelineReport


class GameRepository(Protocol):
    """Persistence for challenges, finished or active games and player stats."""

    async def load_challenge(self, challenge_id: str) -> Optional[Challenge]: ...

    async def list_challenge_ids(self) -> list[str]: ...

    async def load_session(self, game_id: str) -> Optional[GameSession]: ...

    async def save_session(self, session: GameSession) -> None: ...

    async def load_player(self, player_id: str) -> Optional[PlayerProfile]: ...

    async def save_player(self, player: PlayerProfile) -> None: ...


class EventPublisher(Protocol):
    """Fire-and-forget notification of everyone in a room."""

    def publish(self, room_code: str, event_name: str, payload: dict) -> None: ...


class Pipeline(Protocol):
    """Evaluates one submission against a reference program."""

    async def run(self, reference_code: str, test_code: str, player_id: str) -> Outcome[PipelineReport]: ...
