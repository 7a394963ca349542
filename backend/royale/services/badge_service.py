"""Badge rules applied to each player when a game ends."""

from dataclasses import dataclass

from typing import Callable

from royale.core.game import PlayerGameEntry
from royale.core.player import PlayerProfile


@dataclass(frozen=True)
class Badge:
    """An award a player can earn in a single game."""

    condition: str
    name: str
    feedback: str


MUTATION_SLAYER = Badge("mutation_slayer", "Mutation Slayer", "Mutation Slayer: Killed at least 80% of mutants!")
COVERAGE_PLATINUM = Badge("coverage_platinum", "Coverage Platinum", "Coverage Platinum: 100% code coverage!")
COVERAGE_GOLD = Badge("coverage_gold", "Coverage Gold", "Coverage Gold: at least 90% code coverage!")
COVERAGE_SILVER = Badge("coverage_silver", "Coverage Silver", "Coverage Silver: at least 80% code coverage!")
COVERAGE_BRONZE = Badge("coverage_bronze", "Coverage Bronze", "Coverage Bronze: at least 70% code coverage!")
LIGHTNING_TESTER = Badge("lightning_tester", "Lightning Tester", "Lightning Tester: Executed in under 5 seconds!")
FIRST_PLACE = Badge("first_place", "First Place", "First Place: Highest score in this game!")
SECOND_PLACE = Badge("second_place", "Second Place", "Second Place: Great effort!")

BADGES = {
    badge.condition: badge
    for badge in (
        MUTATION_SLAYER,
        COVERAGE_PLATINUM,
        COVERAGE_GOLD,
        COVERAGE_SILVER,
        COVERAGE_BRONZE,
        LIGHTNING_TESTER,
        FIRST_PLACE,
        SECOND_PLACE,
    )
}

MUTATION_SLAYER_THRESHOLD = 80.0
LIGHTNING_MAX_SECONDS = 5.0

# Highest tier first; only the first matching tier is awarded
COVERAGE_TIERS = [
    (100.0, COVERAGE_PLATINUM),
    (90.0, COVERAGE_GOLD),
    (80.0, COVERAGE_SILVER),
    (70.0, COVERAGE_BRONZE),
]


def qualifying_badges(entry: PlayerGameEntry, rank: int) -> list[Badge]:
    """
    Badges an entry qualifies for.

    Args:
        entry: The player's entry with final metrics
        rank: 1-based position in the final ranking

    Returns:
        Badges in award order, at most one coverage tier
    """
    badges = []

    if entry.mutation and entry.mutation.mutation_score_percent >= MUTATION_SLAYER_THRESHOLD:
        badges.append(MUTATION_SLAYER)

    line_rate = entry.coverage.line_rate_percent if entry.coverage else 0.0
    for threshold, badge in COVERAGE_TIERS:
        if line_rate >= threshold:
            badges.append(badge)
            break

    execution_time = entry.test_run.execution_time_seconds if entry.test_run else 0.0
    if 0 < execution_time < LIGHTNING_MAX_SECONDS:
        badges.append(LIGHTNING_TESTER)

    if entry.has_submission:
        if rank == 1:
            badges.append(FIRST_PLACE)
        elif rank == 2:
            badges.append(SECOND_PLACE)

    return badges


def evaluate_badges(entry: PlayerGameEntry, rank: int) -> list[str]:
    """Award new badges to ``entry`` and append their feedback lines.

    Returns the conditions newly added; badges already held are skipped.
    """
    awarded = []
    for badge in qualifying_badges(entry, rank):
        if badge.condition in entry.badges_earned:
            continue
        entry.badges_earned.append(badge.condition)
        entry.feedback = f"{entry.feedback}\n{badge.feedback}" if entry.feedback else badge.feedback
        awarded.append(badge.condition)
    return awarded


# Career milestones, checked against the profile after each finished game
CAREER_ACHIEVEMENTS: list[tuple[str, Callable[[PlayerProfile], bool]]] = [
    ("first_win", lambda player: player.total_games_won >= 1),
    ("win_streak_5", lambda player: player.best_streak >= 5),
    ("games_played_10", lambda player: player.total_games_played >= 10),
    ("high_score_100", lambda player: player.average_score >= 100),
]

CAREER_BADGES: list[tuple[str, Callable[[PlayerProfile], bool]]] = [
    ("win_streak_3", lambda player: player.current_streak >= 3),
    ("games_played_5", lambda player: player.total_games_played >= 5),
    ("high_win_rate", lambda player: player.win_rate >= 80),
]


def evaluate_career(player: PlayerProfile) -> list[str]:
    """Grant career achievements and badges the player's totals now satisfy.

    Args:
        player: Profile with the latest game already folded in

    Returns:
        Names newly granted, achievements first. Awards are never revoked.
    """
    granted = []
    for name, rule in CAREER_ACHIEVEMENTS:
        if name not in player.achievements and rule(player):
            player.achievements.append(name)
            granted.append(name)
    for name, rule in CAREER_BADGES:
        if name not in player.badges and rule(player):
            player.badges.append(name)
            granted.append(name)
    return granted
