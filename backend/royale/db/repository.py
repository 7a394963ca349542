"""SQLAlchemy persistence for challenges, games and players."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from royale.core.game import Challenge, GameSession, GameState, PlayerGameEntry
from royale.core.player import PlayerProfile
from royale.models.challenge import ChallengeRecord
from royale.models.game import GameRecord
from royale.models.player import PlayerRecord

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the tzinfo of stored timestamps
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def challenge_from_record(record: ChallengeRecord) -> Challenge:
    return Challenge(
        id=record.id,
        title=record.title,
        description=record.description,
        reference_code=record.reference_code,
        test_template=record.test_template,
        language=record.language,
        time_limit_seconds=record.time_limit_seconds,
    )


def player_from_record(record: PlayerRecord) -> PlayerProfile:
    return PlayerProfile(
        id=record.id,
        name=record.name,
        total_games_played=record.total_games_played,
        total_games_won=record.total_games_won,
        current_streak=record.current_streak,
        best_streak=record.best_streak,
        total_score=record.total_score,
        average_score=record.average_score,
        best_score=record.best_score,
        win_rate=record.win_rate,
        badges=list(record.badges or []),
        achievements=list(record.achievements or []),
        last_active=_aware(record.last_active),
    )


class SqlGameRepository:
    """Game persistence backed by an async SQLAlchemy session factory."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def load_challenge(self, challenge_id: str) -> Optional[Challenge]:
        async with self.session_maker() as db:
            record = await db.get(ChallengeRecord, challenge_id)
            return challenge_from_record(record) if record else None

    async def list_challenge_ids(self) -> list[str]:
        async with self.session_maker() as db:
            result = await db.execute(select(ChallengeRecord.id).order_by(ChallengeRecord.id))
            return list(result.scalars().all())

    async def load_session(self, game_id: str) -> Optional[GameSession]:
        async with self.session_maker() as db:
            record = await db.get(GameRecord, game_id)
            if record is None:
                return None
            challenge = await db.get(ChallengeRecord, record.challenge_id)
            if challenge is None:
                logger.error(f"Game {game_id} references missing challenge {record.challenge_id}")
                return None

            return GameSession(
                id=record.id,
                room_code=record.room_code,
                challenge=challenge_from_record(challenge),
                entries=[PlayerGameEntry.from_dict(item) for item in record.entries],
                state=GameState(record.state),
                started_at=_aware(record.started_at),
                finished_at=_aware(record.finished_at),
                winner=record.winner,
                total_duration_seconds=record.total_duration_seconds,
            )

    async def save_session(self, session: GameSession) -> None:
        async with self.session_maker() as db:
            record = await db.get(GameRecord, session.id)
            if record is None:
                record = GameRecord(id=session.id)
                db.add(record)

            record.room_code = session.room_code
            record.challenge_id = session.challenge.id
            record.state = session.state.value
            record.entries = [entry.to_dict() for entry in session.entries]
            record.winner = session.winner
            record.total_duration_seconds = session.total_duration_seconds
            record.started_at = session.started_at
            record.finished_at = session.finished_at
            await db.commit()

    async def load_player(self, player_id: str) -> Optional[PlayerProfile]:
        async with self.session_maker() as db:
            record = await db.get(PlayerRecord, player_id)
            return player_from_record(record) if record else None

    async def save_player(self, player: PlayerProfile) -> None:
        async with self.session_maker() as db:
            record = await db.get(PlayerRecord, player.id)
            if record is None:
                record = PlayerRecord(id=player.id)
                db.add(record)

            record.name = player.name
            record.total_games_played = player.total_games_played
            record.total_games_won = player.total_games_won
            record.current_streak = player.current_streak
            record.best_streak = player.best_streak
            record.total_score = player.total_score
            record.average_score = player.average_score
            record.best_score = player.best_score
            record.win_rate = player.win_rate
            record.badges = list(player.badges)
            record.achievements = list(player.achievements)
            record.last_active = player.last_active
            await db.commit()
