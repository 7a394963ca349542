"""Pytest configuration and fixtures."""

import asyncio
import json
from dataclasses import replace
from pathlib import Path
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import royale.models  # noqa: F401
from royale.config import Settings
from royale.core.game import Challenge, GameSession
from royale.core.player import PlayerProfile
from royale.db.database import Base
from royale.db.repository import SqlGameRepository
from royale.engine.pipeline import SubmissionPipeline
from royale.engine.process import CommandResult
from royale.engine.workspace import WorkspaceManager
from royale.api.routes.games import limiter
from royale.main import app
from royale.services.game_service import GameService, get_game_service
from royale.services.room_service import RoomService, get_room_service

# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

REFERENCE_CODE = """public class Calculator
{
    public int Add(int a, int b)
    {
        return a + b;
    }
}"""

TEST_CODE = """using Microsoft.VisualStudio.TestTools.UnitTesting;

[TestClass]
public class PlayerTests
{
    // adds two numbers
    [TestMethod]
    public void AddsNumbers()
    {
        Assert.AreEqual(3, new Calculator().Add(1, 2));
    }
}"""

TEST_SUMMARY = (
    "Test run for /tmp/player_p1/PlayerTests/bin/Debug/net8.0/PlayerTests.dll (.NETCoreApp,Version=v8.0)\n"
    "Starting test execution, please wait...\n"
    "Passed!  - Failed:     {failed}, Passed:     {passed}, Skipped:     0, "
    "Total:     {total}, Duration: 12 ms - PlayerTests.dll (net8.0)"
)

TRX_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<TestRun>
  <Results>
    <UnitTestResult testName="AddsNumbers" outcome="Passed">
      <Output><StdOut>{stdout}</StdOut></Output>
    </UnitTestResult>
  </Results>
</TestRun>"""

COBERTURA_XML = """<?xml version="1.0" encoding="utf-8"?>
<coverage line-rate="0.85" branch-rate="0.9" version="1.9" timestamp="1700000000">
  <packages>
    <package name="PlayerCode" line-rate="0.85" branch-rate="0.9">
      <classes>
        <class name="Calculator" filename="/tmp/ws/PlayerCode/BaseCode.cs" line-rate="0.66">
          <lines>
            <line number="4" hits="1" branch="false" />
            <line number="5" hits="1" branch="false" />
            <line number="6" hits="0" branch="false" />
          </lines>
        </class>
      </classes>
    </package>
  </packages>
</coverage>"""


def stryker_report(statuses: list[str]) -> dict:
    return {
        "schemaVersion": "1",
        "thresholds": {"high": 80, "low": 60},
        "files": {
            "PlayerCode/BaseCode.cs": {
                "language": "cs",
                "mutants": [
                    {
                        "id": str(index),
                        "mutatorName": "Arithmetic mutation",
                        "replacement": "a - b",
                        "location": {"start": {"line": 5, "column": 16}, "end": {"line": 5, "column": 21}},
                        "status": status,
                    }
                    for index, status in enumerate(statuses, start=1)
                ],
            }
        },
    }


def command_result(
    exit_code: int = 0,
    stdout: str = "",
    stderr: str = "",
    duration_seconds: float = 0.01,
    timed_out: bool = False,
    not_found: bool = False,
    truncated: bool = False,
) -> CommandResult:
    return CommandResult(
        argv=[],
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        duration_seconds=duration_seconds,
        timed_out=timed_out,
        not_found=not_found,
        truncated=truncated,
    )


def _option(argv: list[str], name: str) -> Path:
    return Path(argv[argv.index(name) + 1])


class ScriptedProcessRunner:
    """
    Stands in for the .NET toolchain.

    Answers each command by its sub-command and writes the artifacts the real
    tools would (TRX, Cobertura XML, Stryker JSON). ``overrides`` replaces the
    answer for one step: restore, build:<Project>, test, coverage, solution
    or mutation.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.overrides: dict[str, CommandResult] = {}
        self.passed = 3
        self.failed = 0
        self.test_duration = 1.25
        self.test_delay = 0.0
        self.trx_stdout = "adding 1 &amp; 2"
        self.coverage_xml: Optional[str] = COBERTURA_XML
        self.mutant_statuses = ["Killed", "Killed", "Killed", "Survived"]
        self.active_tests = 0
        self.max_active_tests = 0

    def step(self, argv: list[str]) -> str:
        command = argv[1]
        if command == "build":
            return f"build:{Path(argv[2]).name}"
        if command == "test":
            return "coverage" if "--collect" in argv else "test"
        if command in ("new", "sln"):
            return "solution"
        if command == "stryker":
            return "mutation"
        return command

    def steps(self) -> list[str]:
        return [self.step(argv) for argv in self.calls]

    async def run(self, argv, cwd=None, timeout_seconds=None, env=None) -> CommandResult:
        argv = [str(arg) for arg in argv]
        self.calls.append(argv)
        step = self.step(argv)
        if step in self.overrides:
            return replace(self.overrides[step], argv=argv)

        if step == "test":
            return await self._test(argv)
        if step == "coverage":
            return self._coverage(argv)
        if step == "mutation":
            return self._mutation(argv)
        return command_result(stdout=f"{step} succeeded")

    async def _test(self, argv: list[str]) -> CommandResult:
        self.active_tests += 1
        self.max_active_tests = max(self.max_active_tests, self.active_tests)
        try:
            if self.test_delay:
                await asyncio.sleep(self.test_delay)
        finally:
            self.active_tests -= 1

        results_dir = _option(argv, "--results-directory")
        results_dir.mkdir(parents=True, exist_ok=True)
        (results_dir / "run.trx").write_text(TRX_TEMPLATE.format(stdout=self.trx_stdout))

        total = self.passed + self.failed
        return command_result(
            exit_code=1 if self.failed else 0,
            stdout=TEST_SUMMARY.format(passed=self.passed, failed=self.failed, total=total),
            duration_seconds=self.test_duration,
        )

    def _coverage(self, argv: list[str]) -> CommandResult:
        if self.coverage_xml is not None:
            report_dir = _option(argv, "--results-directory") / "5c1e2a9b-run"
            report_dir.mkdir(parents=True, exist_ok=True)
            (report_dir / "coverage.cobertura.xml").write_text(self.coverage_xml)
        return command_result(stdout="Attachments:\n  coverage.cobertura.xml")

    def _mutation(self, argv: list[str]) -> CommandResult:
        reports_dir = _option(argv, "--output") / "2026-01-01.10-00-00" / "reports"
        reports_dir.mkdir(parents=True, exist_ok=True)
        (reports_dir / "mutation-report.json").write_text(json.dumps(stryker_report(self.mutant_statuses)))
        return command_result(stdout="The final mutation score is 75.00 %")


class InMemoryRepository:
    """Dictionary-backed game persistence."""

    def __init__(self, challenges: Optional[list[Challenge]] = None):
        self.challenges = {challenge.id: challenge for challenge in challenges or []}
        self.sessions: dict[str, GameSession] = {}
        self.players: dict[str, PlayerProfile] = {}
        self.saved_sessions = 0

    async def load_challenge(self, challenge_id: str) -> Optional[Challenge]:
        return self.challenges.get(challenge_id)

    async def list_challenge_ids(self) -> list[str]:
        return sorted(self.challenges)

    async def load_session(self, game_id: str) -> Optional[GameSession]:
        return self.sessions.get(game_id)

    async def save_session(self, session: GameSession) -> None:
        self.sessions[session.id] = session
        self.saved_sessions += 1

    async def load_player(self, player_id: str) -> Optional[PlayerProfile]:
        return self.players.get(player_id)

    async def save_player(self, player: PlayerProfile) -> None:
        self.players[player.id] = player


class RecordingPublisher:
    """Collects published room events."""

    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []

    def publish(self, room_code: str, event_name: str, payload: dict) -> None:
        self.events.append((room_code, event_name, payload))

    def names(self) -> list[str]:
        return [name for _, name, _ in self.events]


async def settle(manager: WorkspaceManager) -> None:
    """Wait for scheduled workspace deletions."""
    await asyncio.gather(*list(manager._pending.values()))


@pytest.fixture
def challenge() -> Challenge:
    return Challenge(
        id="calculator",
        title="Calculator",
        description="Adds two integers.",
        reference_code=REFERENCE_CODE,
    )


@pytest.fixture
def engine_settings(tmp_path) -> Settings:
    """Settings with workspaces under the test's temp directory."""
    return Settings(
        workspace_root=tmp_path / "workspaces",
        workspace_retention_seconds=0,
        max_concurrent_pipelines=3,
    )


@pytest.fixture
def toolchain() -> ScriptedProcessRunner:
    return ScriptedProcessRunner()


@pytest.fixture
def pipeline(engine_settings, toolchain) -> SubmissionPipeline:
    return SubmissionPipeline.from_settings(engine_settings, toolchain)


@pytest.fixture
def repository(challenge) -> InMemoryRepository:
    return InMemoryRepository([challenge])


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def room_service() -> RoomService:
    return RoomService(max_players=4, code_length=6)


@pytest.fixture
def game_service(repository, room_service, pipeline, publisher, engine_settings) -> GameService:
    return GameService(
        repository=repository,
        rooms=room_service,
        pipeline=pipeline,
        publisher=publisher,
        settings=engine_settings,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine shared by every session of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def sql_repository(session_maker) -> SqlGameRepository:
    return SqlGameRepository(session_maker)


@pytest_asyncio.fixture(scope="function")
async def client(sql_repository, room_service, pipeline, publisher, engine_settings, test_session):
    """Create a test HTTP client wired to SQLite and the scripted toolchain."""
    from royale.db.seed import seed_challenges

    await seed_challenges(test_session)
    service = GameService(
        repository=sql_repository,
        rooms=room_service,
        pipeline=pipeline,
        publisher=publisher,
        settings=engine_settings,
    )

    limiter.reset()
    app.dependency_overrides[get_game_service] = lambda: service
    app.dependency_overrides[get_room_service] = lambda: room_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
