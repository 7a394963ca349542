"""Rooms gather players before a round starts."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from royale.core.game import GameState


@dataclass
class RoomPlayer:
    """A player seated in a room."""

    player_id: str
    name: str
    is_ready: bool = False
    is_host: bool = False
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "is_ready": self.is_ready,
            "is_host": self.is_host,
            "joined_at": self.joined_at.isoformat(),
        }


@dataclass
class Room:
    """Lobby for one group of players."""

    code: str
    host_id: str
    max_players: int = 4
    players: list[RoomPlayer] = field(default_factory=list)
    game_state: GameState = GameState.WAITING
    game_id: Optional[str] = None

    def find_player(self, player_id: str) -> Optional[RoomPlayer]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    @property
    def all_ready(self) -> bool:
        return bool(self.players) and all(player.is_ready for player in self.players)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "host_id": self.host_id,
            "max_players": self.max_players,
            "players": [player.to_dict() for player in self.players],
            "game_state": self.game_state.value,
            "game_id": self.game_id,
        }
