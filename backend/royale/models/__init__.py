"""Database models package."""

from royale.models.challenge import ChallengeRecord
from royale.models.game import GameRecord
from royale.models.player import PlayerRecord

__all__ = ["ChallengeRecord", "GameRecord", "PlayerRecord"]
