"""Player model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, String, Integer, Float, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from royale.db.database import Base


class PlayerRecord(Base):
    """Long-term statistics for one player."""

    __tablename__ = "players"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    total_games_played: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_games_won: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    best_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    average_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    best_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    win_rate: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    badges: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    achievements: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    last_active: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Player {self.name} games={self.total_games_played}>"
