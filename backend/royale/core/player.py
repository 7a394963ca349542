"""Long-term player statistics."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass
class PlayerProfile:
    """Aggregate record of every game a player has finished."""

    id: str
    name: str
    total_games_played: int = 0
    total_games_won: int = 0
    current_streak: int = 0
    best_streak: int = 0
    total_score: float = 0.0
    average_score: int = 0
    best_score: float = 0.0
    win_rate: int = 0
    badges: list[str] = field(default_factory=list)
    achievements: list[str] = field(default_factory=list)
    last_active: Optional[datetime] = None

    def record_game(self, score: float, won: bool, badges: list[str]) -> None:
        """Fold one finished game into the aggregates."""
        self.total_games_played += 1
        self.total_score += score

        if won:
            self.total_games_won += 1
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.current_streak = 0

        self.average_score = round(self.total_score / self.total_games_played)
        self.best_score = max(self.best_score, score)
        self.win_rate = round(self.total_games_won / self.total_games_played * 100)

        for badge in badges:
            if badge not in self.badges:
                self.badges.append(badge)

        self.last_active = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "total_games_played": self.total_games_played,
            "total_games_won": self.total_games_won,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "total_score": self.total_score,
            "average_score": self.average_score,
            "best_score": self.best_score,
            "win_rate": self.win_rate,
            "badges": list(self.badges),
            "achievements": list(self.achievements),
            "last_active": self.last_active.isoformat() if self.last_active else None,
        }
