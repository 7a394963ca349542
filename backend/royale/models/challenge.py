"""Challenge model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from royale.db.database import Base


class ChallengeRecord(Base):
    """Reference program players write tests against."""

    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    reference_code: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    test_template: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    language: Mapped[str] = mapped_column(
        String(20),
        default="csharp",
        nullable=False,
    )
    time_limit_seconds: Mapped[int] = mapped_column(
        Integer,
        default=300,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Challenge {self.id}>"
