"""Two-tier reward allocation for a resolved question.

Given the final ordered estimates of a question with n entries and
effective_k = min(k, n):

- Bonus tier: positions n - effective_k .. n - 1. Each receives exactly R.
- Scored tier: positions 0 .. n - effective_k - 1. Each receives the CE-MSR
  score of its estimate against the preceding estimate (0.5 for position 0).

Every estimate yields exactly one award, so with one estimate per participant
every participant is paid from exactly one tier and

    total == effective_k * R + sum(scored tier scores)
"""

from __future__ import annotations

from typing import List, Sequence

from selfresolve.shared.enums import RewardTier

from .scoring import EPS, references_for, score_batch
from .types import (
    DEFAULT_PRIOR_BELIEF,
    Allocation,
    Award,
    Estimate,
    InvariantViolation,
    QuestionParams,
)


def effective_k(k: int, n: int) -> int:
    """Bonus tier size; never larger than the number of estimates."""
    return max(0, min(int(k), int(n)))


class RewardAllocator:
    """Compute per-estimate awards. Pure: no I/O, no state between calls."""

    def __init__(self, prior_belief: float = DEFAULT_PRIOR_BELIEF, eps: float = EPS):
        self.prior_belief = prior_belief
        self.eps = eps

    def allocate(self, sequence: Sequence[Estimate], params: QuestionParams) -> Allocation:
        """Allocate rewards for a finalized estimate sequence.

        Raises:
            InvariantViolation: empty sequence, repeated participant, or
                positions that do not match submission order
        """
        n = len(sequence)
        if n == 0:
            raise InvariantViolation("allocation requested for an empty estimate sequence")

        seen: set[int] = set()
        for idx, est in enumerate(sequence):
            if est.participant_id in seen:
                raise InvariantViolation(
                    f"participant {est.participant_id} appears more than once in the sequence"
                )
            seen.add(est.participant_id)
            if est.position != idx:
                raise InvariantViolation(
                    f"estimate at index {idx} carries position {est.position}"
                )

        eff_k = effective_k(params.k, n)
        cutoff = n - eff_k

        values = [e.value for e in sequence]
        scores = score_batch(
            values[:cutoff],
            references_for(values)[:cutoff],
            self.prior_belief,
            self.eps,
        )

        awards: List[Award] = []
        for idx, est in enumerate(sequence):
            if idx < cutoff:
                tier = RewardTier.SCORED
                amount = float(scores[idx])
            else:
                tier = RewardTier.BONUS
                amount = float(params.reward)
            awards.append(
                Award(
                    participant_id=est.participant_id,
                    position=est.position,
                    value_pct=est.value_pct,
                    tier=tier,
                    amount=amount,
                )
            )

        return Allocation(awards=tuple(awards), effective_k=eff_k, reward=float(params.reward))


__all__ = ["RewardAllocator", "effective_k"]
