"""Game session model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, String, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from royale.db.database import Base


class GameRecord(Base):
    """Persisted game session; player entries are stored as JSON."""

    __tablename__ = "games"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    room_code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        index=True,
    )
    challenge_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("challenges.id"),
        nullable=False,
    )
    state: Mapped[str] = mapped_column(
        String(20),
        default="waiting",
        nullable=False,
        index=True,
    )  # waiting, playing, finished
    entries: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    winner: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )
    total_duration_seconds: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Game {self.id} room={self.room_code} state={self.state}>"
