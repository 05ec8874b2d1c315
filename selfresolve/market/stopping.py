"""Stopping rule deciding when a question resolves.

Each consultation is an independent Bernoulli(alpha) trial, so the number of
estimates before resolution is geometric in alpha, truncated at capacity.
The capacity check is unconditional.
"""

from __future__ import annotations

import random
from typing import Optional

from .types import N_MAX


class StoppingRule:
    """Memoryless stop decision with an injected random source."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    @classmethod
    def seeded(cls, seed: Optional[int]) -> "StoppingRule":
        return cls(random.Random(seed))

    def should_stop(self, alpha: float, sequence_length: int, capacity: int = N_MAX) -> bool:
        # Draw on every call so the RNG stream does not depend on the cap.
        triggered = self.rng.random() < alpha
        return triggered or sequence_length >= capacity


__all__ = ["StoppingRule"]
