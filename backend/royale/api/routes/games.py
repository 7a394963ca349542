"""Game routes for playing a round."""

import logging

from fastapi import APIRouter, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from royale.api.deps import Games
from royale.config import get_settings
from royale.schemas.game import (
    CalculateRequest,
    CalculateResponse,
    GameResponse,
    GameResultsResponse,
    StartGameRequest,
    SubmissionResponse,
    SubmitCodeRequest,
)

logger = logging.getLogger(__name__)

settings = get_settings()
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/games", tags=["Games"])


@router.post(
    "",
    response_model=GameResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_game(request: StartGameRequest, games: Games) -> GameResponse:
    """Start a game in the caller's room.

    Every player in the room must be ready and at least two must be seated.
    A challenge is picked at random.
    """
    session = await games.start_game(request.player_id)
    return GameResponse(**session.to_dict())


@router.post("/{game_id}/submissions", response_model=SubmissionResponse)
async def submit_test_code(game_id: str, request: SubmitCodeRequest, games: Games) -> SubmissionResponse:
    """Store test code without running it."""
    entry = await games.submit_test_code(game_id, request.player_id, request.code)
    return SubmissionResponse(
        game_id=game_id,
        player_id=entry.player_id,
        code=entry.submitted_code,
        submitted_at=entry.submitted_at,
    )


@router.get("/{game_id}/submissions/{player_id}", response_model=SubmissionResponse)
async def get_last_submission(game_id: str, player_id: str, games: Games) -> SubmissionResponse:
    return SubmissionResponse(**await games.get_last_submission(game_id, player_id))


@router.post("/{game_id}/calculate", response_model=CalculateResponse)
@limiter.limit(f"{settings.rate_limit_calculations}/minute")
async def calculate_player_data(
    request: Request,
    game_id: str,
    calculate_data: CalculateRequest,
    games: Games,
) -> CalculateResponse:
    """Build, test, measure coverage and mutation score for one player.

    A failed stage is reported in ``error`` with the stage name; compile
    diagnostics are also kept on the entry.
    """
    session = await games.get_game(game_id)
    outcome = await games.calculate_player_data(game_id, calculate_data.player_id, calculate_data.code)
    entry = session.entry_for(calculate_data.player_id)

    if outcome.ok:
        return CalculateResponse(ok=True, entry=entry.to_dict(include_code=False))
    return CalculateResponse(
        ok=False,
        entry=entry.to_dict(include_code=False),
        error=outcome.error.to_dict(),
    )


@router.post("/{game_id}/end", response_model=GameResultsResponse)
async def end_game(game_id: str, games: Games) -> GameResultsResponse:
    """Finish the game, rank players and award badges."""
    return GameResultsResponse(**await games.end_game(game_id))


@router.get("/{game_id}", response_model=GameResponse)
async def get_game(game_id: str, games: Games) -> GameResponse:
    session = await games.get_game(game_id)
    return GameResponse(**session.to_dict())


@router.get("/{game_id}/results", response_model=GameResultsResponse)
async def get_game_results(game_id: str, games: Games) -> GameResultsResponse:
    return GameResultsResponse(**await games.get_game_results(game_id))
