"""Game service driving a round from start to final results."""

import asyncio
import logging
import random
import uuid
from contextlib import AsyncExitStack
from typing import Optional

from royale.config import Settings, get_settings
from royale.core.errors import (
    ChallengeNotFoundError,
    EmptySubmissionError,
    GameAlreadyActiveError,
    GameNotFoundError,
    InvalidTransitionError,
    NotEnoughPlayersError,
    PlayerNotFoundError,
    PlayersNotReadyError,
    RoomStateError,
    SubmissionNotFoundError,
)
from royale.core.game import GameSession, GameState, PlayerGameEntry
from royale.core.player import PlayerProfile
from royale.engine.results import Failure, Outcome, Success
from royale.services.badge_service import evaluate_badges, evaluate_career
from royale.services.interfaces import EventPublisher, GameRepository, Pipeline
from royale.services.room_service import RoomService
from royale.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class GameService:
    """
    Orchestrates game sessions.

    A session moves waiting -> playing -> finished. While playing, players
    store test code and trigger pipeline runs that overwrite their metrics.
    Ending the game scores any entry still missing results, ranks players,
    awards badges and folds the outcome into each player's statistics.
    """

    def __init__(
        self,
        repository: GameRepository,
        rooms: RoomService,
        pipeline: Pipeline,
        publisher: EventPublisher,
        registry: Optional[SessionRegistry] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.repository = repository
        self.rooms = rooms
        self.pipeline = pipeline
        self.publisher = publisher
        self.registry = registry or SessionRegistry()
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    async def ensure_player(self, player_id: str, name: str) -> PlayerProfile:
        """Load a player's profile, creating it on first sight."""
        player = await self.repository.load_player(player_id)
        if player is None:
            player = PlayerProfile(id=player_id, name=name)
            await self.repository.save_player(player)
            logger.info(f"Registered player {player_id} ({name})")
        return player

    async def start_game(self, player_id: str) -> GameSession:
        """
        Start a game in the caller's room.

        Args:
            player_id: Any player seated in the room

        Returns:
            The new session, already in the playing state

        Raises:
            PlayerNotFoundError, RoomNotFoundError, RoomStateError,
            GameAlreadyActiveError, NotEnoughPlayersError,
            PlayersNotReadyError, ChallengeNotFoundError
        """
        if await self.repository.load_player(player_id) is None:
            raise PlayerNotFoundError("Player not found")

        room = self.rooms.get_player_room(player_id)

        async with self.registry.room_lock(room.code):
            if self.registry.get_by_room(room.code) is not None:
                raise GameAlreadyActiveError("A game is already active in this room")
            if room.game_state != GameState.WAITING:
                raise RoomStateError("Room is not waiting for a game")
            if len(room.players) < self.settings.min_players:
                raise NotEnoughPlayersError(
                    f"At least {self.settings.min_players} players are required to start"
                )
            if not room.all_ready:
                raise PlayersNotReadyError("All players must be ready to start")

            challenge_ids = await self.repository.list_challenge_ids()
            if not challenge_ids:
                raise ChallengeNotFoundError("No challenges available")
            challenge_id = self.rng.choice(challenge_ids)
            challenge = await self.repository.load_challenge(challenge_id)
            if challenge is None:
                raise ChallengeNotFoundError(f"Challenge {challenge_id} not found")

            session = GameSession(
                id=uuid.uuid4().hex,
                room_code=room.code,
                challenge=challenge,
                entries=[PlayerGameEntry(player_id=p.player_id) for p in room.players],
            )
            session.start()

            await self.repository.save_session(session)
            self.registry.register(session)
            self.rooms.mark_playing(room.code, session.id)

        logger.info(
            f"Game {session.id} started in room {room.code} "
            f"with {len(session.entries)} players on {challenge.id}"
        )
        self.publisher.publish(room.code, "game_started", session.to_dict())
        return session

    async def submit_test_code(self, game_id: str, player_id: str, code: str) -> PlayerGameEntry:
        """Store a player's test code without scoring it."""
        if not code or not code.strip():
            raise EmptySubmissionError("Test code is required")

        session = await self._playing_session(game_id)
        entry = session.entry_for(player_id)

        async with self.registry.player_lock(game_id, player_id):
            self._ensure_playing(session)
            entry.record_submission(code)
            await self.repository.save_session(session)

        logger.info(f"Player {player_id} submitted {len(code)} chars to game {game_id}")
        self.publisher.publish(
            session.room_code,
            "code_submitted",
            {"game_id": game_id, "player_id": player_id, "submitted_at": entry.submitted_at.isoformat()},
        )
        return entry

    async def get_last_submission(self, game_id: str, player_id: str) -> dict:
        """The player's stored test code and when it was submitted."""
        session = await self.get_game(game_id)
        entry = session.entry_for(player_id)
        if not entry.has_submission:
            raise SubmissionNotFoundError("No submission found for this player")
        return {
            "game_id": game_id,
            "player_id": player_id,
            "code": entry.submitted_code,
            "submitted_at": entry.submitted_at.isoformat() if entry.submitted_at else None,
        }

    async def calculate_player_data(
        self,
        game_id: str,
        player_id: str,
        code: Optional[str] = None,
    ) -> Outcome[PlayerGameEntry]:
        """
        Run the pipeline for one player and overwrite their metrics.

        Args:
            game_id: Session being played
            player_id: Participant to score
            code: New test code to store first; the stored submission is
                used when omitted

        Returns:
            Success with the updated entry, or Failure carrying the
            stage-tagged error. A failed run still stores what it produced.
        """
        session = await self._playing_session(game_id)
        entry = session.entry_for(player_id)

        async with self.registry.player_lock(game_id, player_id):
            self._ensure_playing(session)
            if code is not None:
                if not code.strip():
                    raise EmptySubmissionError("Test code is required")
                entry.record_submission(code)
            elif not entry.has_submission:
                raise SubmissionNotFoundError("No submission found for this player")

            outcome = await self._score_entry(session, entry)
            await self.repository.save_session(session)

        self.publisher.publish(
            session.room_code,
            "player_scored",
            {
                "game_id": game_id,
                "player_id": player_id,
                "ok": outcome.ok,
                "composite_score": entry.composite_score,
            },
        )
        return outcome

    async def end_game(self, game_id: str) -> dict:
        """
        Finish a playing game and produce the final results.

        Entries with a submission but no mutation score or coverage are
        scored first. Players are ranked by composite score, badges are
        awarded, statistics are folded into each player and the room is
        closed.
        """
        async with self.registry.session_lock(game_id), AsyncExitStack() as stack:
            session = await self.get_game(game_id)
            if session.state != GameState.PLAYING:
                raise InvalidTransitionError(f"Cannot end a game that is {session.state.value}")

            # Runs already in flight finish first; later ones see the finished state
            for player_id in sorted(entry.player_id for entry in session.entries):
                await stack.enter_async_context(self.registry.player_lock(game_id, player_id))

            await self._auto_complete(session)

            ranking = session.ranking()
            for rank, entry in enumerate(ranking, start=1):
                evaluate_badges(entry, rank)
            if any(entry.has_submission for entry in session.entries):
                session.winner = ranking[0].player_id

            session.finish()
            await self.repository.save_session(session)
            await self._fold_stats(session)

            self.rooms.delete_room(session.room_code)
            self.registry.unregister(game_id)
            self.registry.release_room(session.room_code)

        results = self.build_results(session)
        logger.info(
            f"Game {game_id} ended after {session.total_duration_seconds}s, winner {session.winner}"
        )
        self.publisher.publish(session.room_code, "game_ended", results)
        return results

    async def get_game(self, game_id: str) -> GameSession:
        """Active session first, persisted one otherwise."""
        session = self.registry.get(game_id)
        if session is None:
            session = await self.repository.load_session(game_id)
        if session is None:
            raise GameNotFoundError("Game not found")
        return session

    async def get_game_results(self, game_id: str) -> dict:
        return self.build_results(await self.get_game(game_id))

    @staticmethod
    def build_results(session: GameSession) -> dict:
        return {
            "game_id": session.id,
            "room_code": session.room_code,
            "challenge_id": session.challenge.id,
            "state": session.state.value,
            "winner": session.winner,
            "started_at": session.started_at.isoformat() if session.started_at else None,
            "finished_at": session.finished_at.isoformat() if session.finished_at else None,
            "total_duration_seconds": session.total_duration_seconds,
            "players": [
                {"rank": rank, **entry.to_dict(include_code=False)}
                for rank, entry in enumerate(session.ranking(), start=1)
            ],
        }

    async def _playing_session(self, game_id: str) -> GameSession:
        session = await self.get_game(game_id)
        self._ensure_playing(session)
        return session

    @staticmethod
    def _ensure_playing(session: GameSession) -> None:
        if session.state != GameState.PLAYING:
            raise InvalidTransitionError(f"Game is {session.state.value}, not playing")

    async def _score_entry(self, session: GameSession, entry: PlayerGameEntry) -> Outcome[PlayerGameEntry]:
        outcome = await self.pipeline.run(
            session.challenge.reference_code,
            entry.submitted_code,
            entry.player_id,
        )
        if outcome.ok:
            entry.apply_report(outcome.value)
            return Success(entry)

        logger.warning(
            f"Pipeline failed for player {entry.player_id} in game {session.id} "
            f"at {outcome.error.stage}: {outcome.error.message}"
        )
        entry.apply_failure(outcome.error)
        return Failure(outcome.error)

    async def _auto_complete(self, session: GameSession) -> None:
        pending = [entry for entry in session.entries if entry.needs_scoring]
        if not pending:
            return

        logger.info(f"Scoring {len(pending)} incomplete entries before ending game {session.id}")
        # Caller holds every player lock
        await asyncio.gather(*(self._score_entry(session, entry) for entry in pending))

    async def _fold_stats(self, session: GameSession) -> None:
        for entry in session.entries:
            player = await self.repository.load_player(entry.player_id)
            if player is None:
                logger.warning(f"Player {entry.player_id} missing; stats not recorded")
                continue
            player.record_game(
                score=entry.composite_score,
                won=entry.player_id == session.winner,
                badges=entry.badges_earned,
            )
            granted = evaluate_career(player)
            if granted:
                logger.info(f"Player {player.id} earned career awards: {', '.join(granted)}")
            await self.repository.save_player(player)


# Singleton instance
_game_service: Optional[GameService] = None


def get_game_service() -> GameService:
    """Get singleton game service."""
    global _game_service
    if _game_service is None:
        from royale.db.database import async_session_maker
        from royale.db.repository import SqlGameRepository
        from royale.engine.pipeline import get_pipeline
        from royale.services.event_publisher import get_event_publisher
        from royale.services.room_service import get_room_service

        _game_service = GameService(
            repository=SqlGameRepository(async_session_maker),
            rooms=get_room_service(),
            pipeline=get_pipeline(),
            publisher=get_event_publisher(),
        )
    return _game_service
