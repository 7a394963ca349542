"""Tests for the game service."""

import asyncio

import pytest

from royale.core.errors import (
    GameAlreadyActiveError,
    GameNotFoundError,
    EmptySubmissionError,
    InvalidTransitionError,
    NotAParticipantError,
    NotEnoughPlayersError,
    PlayerNotFoundError,
    PlayersNotReadyError,
    RoomNotFoundError,
    SubmissionNotFoundError,
)
from royale.core.game import GameState
from royale.engine.errors import CompileError

from conftest import TEST_CODE, command_result


async def seat_players(game_service, room_service, ready: bool = True, count: int = 2):
    """Register players, seat them in one room and optionally mark them ready."""
    player_ids = [f"p{index}" for index in range(1, count + 1)]
    for player_id in player_ids:
        await game_service.ensure_player(player_id, player_id.upper())

    room = room_service.create_room(player_ids[0], "P1")
    for player_id in player_ids[1:]:
        room_service.join_room(player_id, room.code, player_id.upper())
    if ready:
        for player_id in player_ids:
            room_service.set_ready(player_id, True)
    return room


@pytest.fixture
async def started(game_service, room_service):
    await seat_players(game_service, room_service)
    return await game_service.start_game("p1")


class TestStartGame:
    """Tests for starting a game."""

    async def test_start_game(self, game_service, room_service, repository, publisher):
        room = await seat_players(game_service, room_service)

        session = await game_service.start_game("p1")

        assert session.state == GameState.PLAYING
        assert session.started_at is not None
        assert session.challenge.id == "calculator"
        assert [entry.player_id for entry in session.entries] == ["p1", "p2"]
        assert room.game_state == GameState.PLAYING
        assert room.game_id == session.id
        assert repository.sessions[session.id] is session
        assert publisher.names() == ["game_started"]

    async def test_unknown_player(self, game_service):
        with pytest.raises(PlayerNotFoundError):
            await game_service.start_game("ghost")

    async def test_player_without_room(self, game_service):
        await game_service.ensure_player("p1", "P1")
        with pytest.raises(RoomNotFoundError):
            await game_service.start_game("p1")

    async def test_not_enough_players(self, game_service, room_service):
        await seat_players(game_service, room_service, count=1)
        with pytest.raises(NotEnoughPlayersError):
            await game_service.start_game("p1")

    async def test_players_not_ready(self, game_service, room_service):
        await seat_players(game_service, room_service, ready=False)
        with pytest.raises(PlayersNotReadyError):
            await game_service.start_game("p1")

    async def test_second_start_rejected(self, game_service, room_service):
        await seat_players(game_service, room_service)
        await game_service.start_game("p1")

        with pytest.raises(GameAlreadyActiveError):
            await game_service.start_game("p2")

    async def test_concurrent_starts_create_one_game(self, game_service, room_service):
        await seat_players(game_service, room_service)

        results = await asyncio.gather(
            game_service.start_game("p1"),
            game_service.start_game("p2"),
            return_exceptions=True,
        )

        sessions = [r for r in results if not isinstance(r, Exception)]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(sessions) == 1
        assert isinstance(errors[0], GameAlreadyActiveError)
        assert len(game_service.registry) == 1


class TestSubmissions:
    """Tests for storing test code."""

    async def test_submit_and_read_back(self, game_service, started, publisher):
        entry = await game_service.submit_test_code(started.id, "p1", TEST_CODE)

        assert entry.submitted_code == TEST_CODE
        assert entry.composite_score == 0.0

        last = await game_service.get_last_submission(started.id, "p1")
        assert last["code"] == TEST_CODE
        assert last["submitted_at"] == entry.submitted_at.isoformat()
        assert publisher.names()[-1] == "code_submitted"

    async def test_resubmission_overwrites(self, game_service, started):
        await game_service.submit_test_code(started.id, "p1", "first")
        await game_service.submit_test_code(started.id, "p1", TEST_CODE)

        last = await game_service.get_last_submission(started.id, "p1")
        assert last["code"] == TEST_CODE

    async def test_empty_submission(self, game_service, started):
        with pytest.raises(EmptySubmissionError):
            await game_service.submit_test_code(started.id, "p1", "   ")

    async def test_outsider_rejected(self, game_service, started):
        with pytest.raises(NotAParticipantError):
            await game_service.submit_test_code(started.id, "p9", TEST_CODE)

    async def test_unknown_game(self, game_service):
        with pytest.raises(GameNotFoundError):
            await game_service.submit_test_code("missing", "p1", TEST_CODE)

    async def test_no_submission_yet(self, game_service, started):
        with pytest.raises(SubmissionNotFoundError):
            await game_service.get_last_submission(started.id, "p2")


class TestCalculate:
    """Tests for scoring a player mid-game."""

    async def test_success_overwrites_metrics(self, game_service, started, publisher):
        outcome = await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

        assert outcome.ok
        entry = outcome.value
        assert entry.composite_score == pytest.approx(61.815)
        assert entry.mutation.mutation_score_percent == 75.0
        assert entry.coverage.line_rate_percent == 85.0
        assert entry.test_line_count == 6
        assert entry.last_error is None
        assert entry.scored_at is not None
        assert publisher.events[-1][1] == "player_scored"
        assert publisher.events[-1][2]["ok"] is True

    async def test_uses_stored_submission(self, game_service, started, toolchain):
        await game_service.submit_test_code(started.id, "p1", TEST_CODE)

        outcome = await game_service.calculate_player_data(started.id, "p1")

        assert outcome.ok
        assert "restore" in toolchain.steps()

    async def test_requires_submission(self, game_service, started):
        with pytest.raises(SubmissionNotFoundError):
            await game_service.calculate_player_data(started.id, "p1")

    async def test_compile_failure_recorded(self, game_service, started, toolchain):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)
        toolchain.overrides["build:PlayerTests"] = command_result(exit_code=1, stdout="Build FAILED.")

        outcome = await game_service.calculate_player_data(started.id, "p1", "broken")

        assert not outcome.ok
        assert isinstance(outcome.error, CompileError)
        entry = started.entry_for("p1")
        assert entry.composite_score == 0.0
        assert entry.mutation is None
        assert entry.test_run.compile_error_detail == outcome.error.detail
        assert entry.last_error["stage"] == "compile"
        assert entry.submitted_code == "broken"

    async def test_same_player_runs_are_serialized(self, game_service, started, toolchain):
        toolchain.test_delay = 0.2

        first, second = await asyncio.gather(
            game_service.calculate_player_data(started.id, "p1", TEST_CODE),
            game_service.calculate_player_data(started.id, "p1", TEST_CODE),
        )

        assert first.ok and second.ok
        assert toolchain.max_active_tests == 1

    async def test_different_players_run_concurrently(self, game_service, started, toolchain):
        toolchain.test_delay = 0.2

        await asyncio.gather(
            game_service.calculate_player_data(started.id, "p1", TEST_CODE),
            game_service.calculate_player_data(started.id, "p2", TEST_CODE),
        )

        assert toolchain.max_active_tests == 2


class TestEndGame:
    """Tests for finishing a game."""

    async def test_end_game_ranks_and_awards(self, game_service, started, repository, room_service, publisher):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

        results = await game_service.end_game(started.id)

        assert results["state"] == "finished"
        assert results["winner"] == "p1"
        assert [p["player_id"] for p in results["players"]] == ["p1", "p2"]
        assert [p["rank"] for p in results["players"]] == [1, 2]
        assert "submitted_code" not in results["players"][0]

        winner = results["players"][0]
        assert winner["badges_earned"] == ["coverage_silver", "lightning_tester", "first_place"]
        assert results["players"][1]["badges_earned"] == []

        assert started.state == GameState.FINISHED
        assert started.finished_at is not None
        assert started.id not in game_service.registry
        assert room_service.list_rooms() == []
        assert publisher.names()[-1] == "game_ended"

    async def test_end_game_folds_statistics(self, game_service, started, repository):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

        await game_service.end_game(started.id)

        winner = repository.players["p1"]
        assert winner.total_games_played == 1
        assert winner.total_games_won == 1
        assert winner.best_score == pytest.approx(61.815)
        assert "first_place" in winner.badges

        runner_up = repository.players["p2"]
        assert runner_up.total_games_played == 1
        assert runner_up.total_games_won == 0

    async def test_auto_completes_unscored_submissions(self, game_service, started, toolchain):
        await game_service.submit_test_code(started.id, "p2", TEST_CODE)

        results = await game_service.end_game(started.id)

        assert toolchain.steps().count("mutation") == 1
        assert results["winner"] == "p2"
        assert results["players"][0]["composite_score"] == pytest.approx(61.815)

    async def test_end_waits_for_running_calculation(self, game_service, started, repository, toolchain):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)
        await game_service.calculate_player_data(started.id, "p2", TEST_CODE)

        toolchain.test_delay = 0.3
        longer_code = TEST_CODE.replace("    }\n}", "    }\n\n    [TestMethod]\n    public void Extra() { }\n}")
        running = asyncio.create_task(game_service.calculate_player_data(started.id, "p1", longer_code))
        while toolchain.active_tests == 0:
            await asyncio.sleep(0.01)

        results = await game_service.end_game(started.id)
        outcome = await running

        assert outcome.ok
        finished = started.to_dict()
        p1_result = next(p for p in results["players"] if p["player_id"] == "p1")
        assert p1_result["composite_score"] == started.entry_for("p1").composite_score
        assert p1_result["composite_score"] > started.entry_for("p2").composite_score
        assert results["winner"] == "p1"
        assert repository.players["p1"].best_score == p1_result["composite_score"]

        await asyncio.sleep(0.05)
        assert started.to_dict() == finished
        assert repository.sessions[started.id].to_dict() == finished

    async def test_calculation_after_end_is_rejected(self, game_service, started, toolchain):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)
        lock = game_service.registry.player_lock(started.id, "p1")

        async with lock:
            ending = asyncio.create_task(game_service.end_game(started.id))
            await asyncio.sleep(0.05)
            assert not ending.done()
            late = asyncio.create_task(game_service.calculate_player_data(started.id, "p1", TEST_CODE))
            await asyncio.sleep(0.01)

        await ending
        with pytest.raises(InvalidTransitionError):
            await late
        assert toolchain.steps().count("mutation") == 1

    async def test_no_submissions_means_no_winner(self, game_service, started, toolchain):
        results = await game_service.end_game(started.id)

        assert results["winner"] is None
        assert toolchain.calls == []

    async def test_cannot_end_twice(self, game_service, started):
        await game_service.end_game(started.id)

        with pytest.raises(InvalidTransitionError):
            await game_service.end_game(started.id)

    async def test_no_submissions_after_finish(self, game_service, started):
        await game_service.end_game(started.id)

        with pytest.raises(InvalidTransitionError):
            await game_service.submit_test_code(started.id, "p1", TEST_CODE)
        with pytest.raises(InvalidTransitionError):
            await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

    async def test_results_after_finish(self, game_service, started):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)
        ended = await game_service.end_game(started.id)

        results = await game_service.get_game_results(started.id)

        assert results == ended

    async def test_room_can_start_again(self, game_service, room_service, started):
        await game_service.end_game(started.id)

        room = await seat_players(game_service, room_service)
        session = await game_service.start_game("p1")

        assert session.room_code == room.code
        assert session.id != started.id


class TestCareerAwards:
    """Tests for milestones granted when statistics are folded."""

    async def test_first_win(self, game_service, started, repository):
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

        await game_service.end_game(started.id)

        winner = repository.players["p1"]
        assert winner.achievements == ["first_win"]
        assert "high_win_rate" in winner.badges

        runner_up = repository.players["p2"]
        assert runner_up.achievements == []
        assert "high_win_rate" not in runner_up.badges

    async def test_milestones_reached_on_threshold(self, game_service, started, repository):
        veteran = repository.players["p1"]
        veteran.total_games_played = 4
        veteran.total_games_won = 4
        veteran.current_streak = 4
        veteran.best_streak = 4
        veteran.total_score = 450.0
        veteran.achievements = ["first_win"]
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

        await game_service.end_game(started.id)

        assert veteran.total_games_played == 5
        assert veteran.average_score == 102
        assert veteran.achievements == ["first_win", "win_streak_5", "high_score_100"]
        assert veteran.badges[-3:] == ["win_streak_3", "games_played_5", "high_win_rate"]
        assert "games_played_10" not in veteran.achievements

    async def test_awards_are_kept_after_a_loss(self, game_service, started, repository):
        streaker = repository.players["p2"]
        streaker.total_games_played = 3
        streaker.total_games_won = 3
        streaker.current_streak = 3
        streaker.best_streak = 3
        streaker.win_rate = 100
        streaker.achievements = ["first_win"]
        streaker.badges = ["win_streak_3", "high_win_rate"]
        await game_service.calculate_player_data(started.id, "p1", TEST_CODE)

        await game_service.end_game(started.id)

        assert streaker.current_streak == 0
        assert streaker.win_rate == 75
        assert streaker.badges == ["win_streak_3", "high_win_rate"]
        assert streaker.achievements == ["first_win"]
