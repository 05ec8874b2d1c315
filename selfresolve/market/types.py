"""Errors, value types and constants for the market engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from selfresolve.shared.enums import QuestionStatus, RewardTier


# Hard cap on estimates per question when no setting overrides it
N_MAX = 100

# Reference used for the first estimate in a sequence (uninformative prior)
DEFAULT_REFERENCE = 0.5

# Outcome weight used in place of an observed outcome
DEFAULT_PRIOR_BELIEF = 0.5


class MarketError(Exception):
    """Base class for errors surfaced by the market engine."""

    code = "market_error"


class ValidationError(MarketError):
    """Raised when a request is rejected. No state is mutated."""

    code = "validation_error"


class NotFoundError(MarketError):
    """Raised for unknown question or participant ids."""

    code = "not_found"


class InvariantViolation(MarketError):
    """A core invariant was broken. Indicates a bug or failed concurrency control."""

    code = "invariant_violation"


class ConcurrencyError(MarketError):
    """Optimistic retries were exhausted for one submission."""

    code = "conflict"


@dataclass(frozen=True)
class QuestionParams:
    """Parameter triple of a question: bonus R, bonus tier size k, stop probability alpha."""

    reward: float
    k: int
    alpha: float


@dataclass(frozen=True)
class Estimate:
    """One participant's belief, stored as the external integer percentage."""

    participant_id: int
    value_pct: int
    position: int
    submitted_at: Optional[datetime] = None

    @property
    def value(self) -> float:
        return self.value_pct / 100.0


@dataclass(frozen=True)
class Award:
    """Reward delta for one estimate in a resolved question."""

    participant_id: int
    position: int
    value_pct: int
    tier: RewardTier
    amount: float


@dataclass(frozen=True)
class Allocation:
    """Result of one resolution event, ordered by submission position."""

    awards: Tuple[Award, ...]
    effective_k: int
    reward: float

    @property
    def total(self) -> float:
        return float(sum(a.amount for a in self.awards))

    @property
    def bonus_total(self) -> float:
        return float(sum(a.amount for a in self.awards if a.tier is RewardTier.BONUS))

    @property
    def scored_total(self) -> float:
        return float(sum(a.amount for a in self.awards if a.tier is RewardTier.SCORED))

    def deltas(self) -> Dict[int, float]:
        """Participant id -> reward delta."""
        return {a.participant_id: a.amount for a in self.awards}


@dataclass
class QuestionState:
    """Mutable in-memory view of one question used by the lifecycle."""

    question_id: int
    params: QuestionParams
    estimates: List[Estimate] = field(default_factory=list)
    status: QuestionStatus = QuestionStatus.OPEN

    @property
    def resolved(self) -> bool:
        return self.status is QuestionStatus.RESOLVED

    def has_participant(self, participant_id: int) -> bool:
        return any(e.participant_id == participant_id for e in self.estimates)

    def append(self, participant_id: int, value_pct: int, submitted_at: Optional[datetime] = None) -> Estimate:
        if self.resolved:
            raise InvariantViolation(f"question {self.question_id} is resolved; estimates are immutable")
        est = Estimate(
            participant_id=participant_id,
            value_pct=value_pct,
            position=len(self.estimates),
            submitted_at=submitted_at,
        )
        self.estimates.append(est)
        return est

    def mark_resolved(self) -> None:
        if self.resolved:
            raise InvariantViolation(f"question {self.question_id} resolved twice")
        if not self.estimates:
            raise InvariantViolation(f"question {self.question_id} cannot resolve with no estimates")
        self.status = QuestionStatus.RESOLVED


@dataclass(frozen=True)
class SubmissionOutcome:
    estimate: Estimate
    resolved: bool
    allocation: Optional[Allocation] = None


__all__ = [
    "N_MAX",
    "DEFAULT_REFERENCE",
    "DEFAULT_PRIOR_BELIEF",
    "MarketError",
    "ValidationError",
    "NotFoundError",
    "InvariantViolation",
    "ConcurrencyError",
    "QuestionParams",
    "Estimate",
    "Award",
    "Allocation",
    "QuestionState",
    "SubmissionOutcome",
]
