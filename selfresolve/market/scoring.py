"""Cross-entropy market scoring rule (CE-MSR).

A self-resolving question never observes its outcome, so the score of an
estimate q_t against the preceding estimate q_{t-1} is the change in
cross-entropy under a fixed prior belief r about the outcome:

    S(r, q_t, q_{t-1}) = -H(r, q_t) + H(r, q_{t-1})
                       = r * ln(q_t / q_{t-1}) + (1 - r) * ln((1 - q_t) / (1 - q_{t-1}))

Every probability is smoothed by EPS inside ln() so that boundary inputs stay
finite. Scores are signed and never clamped: moving the estimate away from the
prior costs points, moving toward it earns points.

Inputs are trusted: callers validate percentages and convert to (0, 1) first.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .types import DEFAULT_PRIOR_BELIEF, DEFAULT_REFERENCE

# Smoothing constant to prevent ln(0)
EPS = 1e-4


def score(
    estimate: float,
    reference: float,
    prior_belief: float = DEFAULT_PRIOR_BELIEF,
    eps: float = EPS,
) -> float:
    """CE-MSR score of one estimate against its reference.

    Args:
        estimate: Participant's probability that the event occurs, in (0, 1)
        reference: Preceding estimate in the sequence (0.5 for the first one)
        prior_belief: Weight standing in for the unobserved outcome
        eps: Smoothing constant, applied identically to every term

    Returns:
        Signed score; 0 when estimate == reference
    """
    yes = np.log((estimate + eps) / (reference + eps))
    no = np.log(((1.0 - estimate) + eps) / ((1.0 - reference) + eps))
    return float(prior_belief * yes + (1.0 - prior_belief) * no)


def score_batch(
    estimates: ArrayLike,
    references: ArrayLike,
    prior_belief: float = DEFAULT_PRIOR_BELIEF,
    eps: float = EPS,
) -> NDArray[np.float64]:
    """Vectorised `score` over equally shaped arrays.

    Args:
        estimates: Shape (N,) probabilities
        references: Shape (N,) reference probabilities

    Returns:
        Shape (N,) array of scores
    """
    q = np.asarray(estimates, dtype=np.float64)
    ref = np.asarray(references, dtype=np.float64)
    if q.shape != ref.shape:
        raise ValueError(f"shape mismatch: estimates {q.shape} vs references {ref.shape}")
    yes = np.log((q + eps) / (ref + eps))
    no = np.log(((1.0 - q) + eps) / ((1.0 - ref) + eps))
    return prior_belief * yes + (1.0 - prior_belief) * no


def references_for(values: Sequence[float]) -> NDArray[np.float64]:
    """Reference for each position: DEFAULT_REFERENCE, then each predecessor."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return arr
    return np.concatenate(([DEFAULT_REFERENCE], arr[:-1]))


def score_curve(
    reference_pct: int,
    prior_belief: float = DEFAULT_PRIOR_BELIEF,
    eps: float = EPS,
) -> NDArray[np.float64]:
    """Score of every integer estimate 1..99 against a fixed reference percentage.

    Returns:
        Shape (99,) array; index i holds the score of estimate (i + 1)%.
    """
    pcts = np.arange(1, 100, dtype=np.float64) / 100.0
    ref = np.full_like(pcts, reference_pct / 100.0)
    return score_batch(pcts, ref, prior_belief, eps)


__all__ = [
    "EPS",
    "score",
    "score_batch",
    "references_for",
    "score_curve",
]
