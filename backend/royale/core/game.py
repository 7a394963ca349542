"""
Test Royale game sessions.

A session binds the players of one room to a single challenge. Its state
only ever moves forward:

    waiting -> playing -> finished

Each player has one entry holding their latest submission and the metrics
of the most recent pipeline run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from royale.core.errors import InvalidTransitionError, NotAParticipantError
from royale.engine.errors import EngineError
from royale.engine.results import CoverageReport, MutationReport, PipelineReport, TestRunResult


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameState(str, Enum):
    """Life cycle of a game session."""

    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


ALLOWED_TRANSITIONS = {
    GameState.WAITING: {GameState.PLAYING},
    GameState.PLAYING: {GameState.FINISHED},
    GameState.FINISHED: set(),
}


@dataclass(frozen=True)
class Challenge:
    """Reference program the players write tests against."""

    id: str
    title: str
    reference_code: str
    description: str = ""
    test_template: Optional[str] = None
    language: str = "csharp"
    time_limit_seconds: int = 300

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "reference_code": self.reference_code,
            "test_template": self.test_template,
            "language": self.language,
            "time_limit_seconds": self.time_limit_seconds,
        }


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class PlayerGameEntry:
    """One player's submission and metrics within a session."""

    player_id: str
    submitted_code: Optional[str] = None
    submitted_at: Optional[datetime] = None
    test_run: Optional[TestRunResult] = None
    coverage: Optional[CoverageReport] = None
    mutation: Optional[MutationReport] = None
    composite_score: float = 0.0
    test_line_count: int = 0
    badges_earned: list[str] = field(default_factory=list)
    feedback: str = ""
    last_error: Optional[dict] = None
    scored_at: Optional[datetime] = None

    @property
    def has_submission(self) -> bool:
        return bool(self.submitted_code and self.submitted_code.strip())

    @property
    def needs_scoring(self) -> bool:
        """Submitted but missing a mutation score or coverage data."""
        if not self.has_submission:
            return False
        missing_mutation = self.mutation is None or not self.mutation.mutation_score_percent
        missing_coverage = self.coverage is None or not self.coverage.line_rate_percent
        return missing_mutation or missing_coverage

    def record_submission(self, code: str, at: Optional[datetime] = None) -> None:
        self.submitted_code = code
        self.submitted_at = at or utcnow()

    def apply_report(self, report: PipelineReport) -> None:
        """Overwrite metrics with a completed pipeline run."""
        self.test_run = report.test_run
        self.coverage = report.coverage
        self.mutation = report.mutation
        self.test_line_count = report.test_line_count
        self.composite_score = report.composite_score
        self.last_error = None
        self.scored_at = utcnow()

    def apply_failure(self, error: EngineError) -> None:
        """Keep whatever a failed run produced so the player can see why."""
        compile_detail = error.detail if error.stage == "compile" else None
        self.test_run = TestRunResult.empty(compile_error_detail=compile_detail)
        self.coverage = None
        self.mutation = None
        self.composite_score = 0.0
        self.last_error = error.to_dict()
        self.scored_at = utcnow()

    def to_dict(self, include_code: bool = True) -> dict:
        result = {
            "player_id": self.player_id,
            "submitted_at": _format_datetime(self.submitted_at),
            "test_run": self.test_run.to_dict() if self.test_run else None,
            "coverage": self.coverage.to_dict() if self.coverage else None,
            "mutation": self.mutation.to_dict() if self.mutation else None,
            "composite_score": self.composite_score,
            "test_line_count": self.test_line_count,
            "badges_earned": list(self.badges_earned),
            "feedback": self.feedback,
            "last_error": self.last_error,
            "scored_at": _format_datetime(self.scored_at),
        }
        if include_code:
            result["submitted_code"] = self.submitted_code
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerGameEntry":
        return cls(
            player_id=data["player_id"],
            submitted_code=data.get("submitted_code"),
            submitted_at=_parse_datetime(data.get("submitted_at")),
            test_run=TestRunResult.from_dict(data["test_run"]) if data.get("test_run") else None,
            coverage=CoverageReport.from_dict(data["coverage"]) if data.get("coverage") else None,
            mutation=MutationReport.from_dict(data["mutation"]) if data.get("mutation") else None,
            composite_score=data.get("composite_score", 0.0),
            test_line_count=data.get("test_line_count", 0),
            badges_earned=list(data.get("badges_earned", [])),
            feedback=data.get("feedback", ""),
            last_error=data.get("last_error"),
            scored_at=_parse_datetime(data.get("scored_at")),
        )


@dataclass
class GameSession:
    """One competitive round of a room."""

    id: str
    room_code: str
    challenge: Challenge
    entries: list[PlayerGameEntry] = field(default_factory=list)
    state: GameState = GameState.WAITING
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    winner: Optional[str] = None
    total_duration_seconds: int = 0

    def entry_for(self, player_id: str) -> PlayerGameEntry:
        for entry in self.entries:
            if entry.player_id == player_id:
                return entry
        raise NotAParticipantError(
            "Player not part of this game. Please join before submitting code."
        )

    def is_participant(self, player_id: str) -> bool:
        return any(entry.player_id == player_id for entry in self.entries)

    def transition(self, new_state: GameState) -> None:
        """Move to ``new_state``, rejecting anything but the next forward step."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move game from {self.state.value} to {new_state.value}"
            )
        self.state = new_state

    def start(self, at: Optional[datetime] = None) -> None:
        self.transition(GameState.PLAYING)
        self.started_at = at or utcnow()

    def finish(self, at: Optional[datetime] = None) -> None:
        self.transition(GameState.FINISHED)
        self.finished_at = at or utcnow()
        if self.started_at:
            self.total_duration_seconds = round((self.finished_at - self.started_at).total_seconds())

    def ranking(self) -> list[PlayerGameEntry]:
        """Entries by composite score, highest first; ties keep join order."""
        return sorted(self.entries, key=lambda entry: entry.composite_score, reverse=True)

    def to_dict(self, include_code: bool = False) -> dict:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "challenge": self.challenge.to_dict(),
            "entries": [entry.to_dict(include_code=include_code) for entry in self.entries],
            "state": self.state.value,
            "started_at": _format_datetime(self.started_at),
            "finished_at": _format_datetime(self.finished_at),
            "winner": self.winner,
            "total_duration_seconds": self.total_duration_seconds,
        }
