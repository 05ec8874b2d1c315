"""API v1 question, estimate and result models.

Estimates are exposed as integer percentages (1..99), the same form callers
submit them in.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from selfresolve.shared.enums import QuestionStatus, RewardTier


class QuestionParameters(BaseModel):
    model_config = ConfigDict(extra="ignore")

    R: float = Field(..., gt=0, description="Flat bonus paid to each of the last k estimates")
    k: int = Field(..., ge=1, description="Bonus tier size")
    alpha: float = Field(..., gt=0, le=1, description="Probability of resolving after each estimate")


class EstimateView(BaseModel):
    model_config = ConfigDict(extra="ignore")

    participant_id: int
    value: int = Field(..., ge=1, le=99, description="Estimate as an integer percentage")
    position: int = Field(..., ge=0, description="0-based submission order")
    submitted_at: Optional[datetime] = None


class QuestionView(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    text: str
    parameters: QuestionParameters
    estimates: List[EstimateView] = Field(default_factory=list)
    status: QuestionStatus
    resolved: bool


class SubmitResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question_id: int
    position: int
    resolved: bool


class ParticipantResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    participant_id: int
    estimate: int = Field(..., ge=1, le=99)
    reward: float
    tier: RewardTier


class ResultsView(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question_id: int
    final_estimate: int = Field(..., ge=1, le=99, description="Last estimate before resolution")
    effective_k: int
    allocation_hash: Optional[str] = None
    per_participant: List[ParticipantResult]


class ParticipantTotal(BaseModel):
    model_config = ConfigDict(extra="ignore")

    participant_id: int
    total: float


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    participant_id: int
    username: str
    total: float


class ScoreCurvePoint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    estimate: int
    score: float


__all__ = [
    "QuestionParameters",
    "EstimateView",
    "QuestionView",
    "SubmitResult",
    "ParticipantResult",
    "ResultsView",
    "ParticipantTotal",
    "LeaderboardEntry",
    "ScoreCurvePoint",
]
