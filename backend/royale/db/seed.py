"""Seed script to load challenge content."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from royale.config import get_settings
from royale.db.database import async_session_maker, init_db
from royale.models.challenge import ChallengeRecord

logger = logging.getLogger(__name__)


# Challenge definitions; each file is <id>.cs with an optional <id>.tests.cs hint
CHALLENGE_DEFINITIONS = [
    {
        "id": "palindrome",
        "title": "Palindrome Checker",
        "description": "Decide whether a string reads the same backwards.",
        "time_limit_seconds": 300,
    },
    {
        "id": "fizzbuzz",
        "title": "FizzBuzz",
        "description": "Classic FizzBuzz with a range helper.",
        "time_limit_seconds": 300,
    },
    {
        "id": "bank_account",
        "title": "Bank Account",
        "description": "Deposits, withdrawals and an overdraft guard.",
        "time_limit_seconds": 420,
    },
]


def read_challenge_files(challenges_dir: Path, challenge_id: str) -> Optional[dict]:
    """Read the reference program and test hint of one challenge.

    Args:
        challenges_dir: Directory holding the challenge sources
        challenge_id: File stem of the challenge

    Returns:
        Dictionary with reference_code and test_template, or None when the
        reference file is missing
    """
    reference_path = challenges_dir / f"{challenge_id}.cs"
    if not reference_path.exists():
        logger.warning(f"Challenge file not found: {reference_path}")
        return None

    template_path = challenges_dir / f"{challenge_id}.tests.cs"
    return {
        "reference_code": reference_path.read_text(encoding="utf-8"),
        "test_template": template_path.read_text(encoding="utf-8") if template_path.exists() else None,
    }


async def seed_challenge(
    session: AsyncSession,
    definition: dict,
    challenges_dir: Path,
) -> Optional[ChallengeRecord]:
    """Create or refresh one challenge from its files."""
    files = read_challenge_files(challenges_dir, definition["id"])
    if files is None:
        return None

    result = await session.execute(
        select(ChallengeRecord).where(ChallengeRecord.id == definition["id"])
    )
    existing = result.scalar_one_or_none()

    if existing:
        existing.title = definition["title"]
        existing.description = definition["description"]
        existing.time_limit_seconds = definition["time_limit_seconds"]
        existing.reference_code = files["reference_code"]
        existing.test_template = files["test_template"]
        logger.info(f"Updated challenge: {existing.id}")
        return existing

    challenge = ChallengeRecord(**definition, **files)
    session.add(challenge)
    await session.flush()

    logger.info(f"Created challenge: {challenge.id}")
    return challenge


async def seed_challenges(
    session: Optional[AsyncSession] = None,
    challenges_dir: Optional[Path] = None,
) -> list[ChallengeRecord]:
    """Seed all challenges into the database.

    Args:
        session: Optional database session. If not provided, creates one.
        challenges_dir: Source directory, defaults to the configured one

    Returns:
        List of created or updated challenges
    """
    challenges_dir = challenges_dir or get_settings().challenges_dir
    if not challenges_dir.exists():
        raise FileNotFoundError(f"Challenges directory not found: {challenges_dir}")

    if session is None:
        async with async_session_maker() as session:
            return await seed_challenges(session, challenges_dir)

    seeded = []
    for definition in CHALLENGE_DEFINITIONS:
        challenge = await seed_challenge(session, definition, challenges_dir)
        if challenge:
            seeded.append(challenge)
    await session.commit()

    logger.info(f"Seeded {len(seeded)} challenges")
    return seeded


async def main():
    """Main entry point for running seed script."""
    print("Seeding challenge data...")
    await init_db()
    await seed_challenges()
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
