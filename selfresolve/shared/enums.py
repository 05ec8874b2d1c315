from __future__ import annotations

from enum import Enum


class QuestionStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class RewardTier(str, Enum):
    BONUS = "bonus"
    SCORED = "scored"


__all__ = ["QuestionStatus", "RewardTier"]
