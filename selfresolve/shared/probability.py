"""Probability utilities shared by the engine and the contract layer.

Estimates travel as integer percentages (1..99) at the edges and as
probabilities in the open interval (0, 1) inside the scoring core.

Safe math and bounds:
- Percentages must be integral and within [PCT_MIN, PCT_MAX]; otherwise a
  ValueError is raised.
- Probabilities handed back are always strictly inside (0, 1).
"""

from __future__ import annotations

import math
import numbers

PCT_MIN = 1
PCT_MAX = 99


def coerce_percentage(value: object) -> int:
    """Return `value` as an int percentage in [PCT_MIN, PCT_MAX].

    Accepts ints and integral floats/strings ("42", 42.0). Booleans are
    rejected even though they are ints.

    Raises ValueError for anything else.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"estimate must be an integer percentage, got {value!r}")
    if isinstance(value, str):
        value = value.strip()
        try:
            value = int(value)
        except ValueError:
            raise ValueError(f"estimate must be an integer percentage, got {value!r}")
    if isinstance(value, numbers.Integral):
        pct = int(value)
    elif isinstance(value, numbers.Real):
        f = float(value)
        if not math.isfinite(f) or not f.is_integer():
            raise ValueError(f"estimate must be an integer percentage, got {value!r}")
        pct = int(f)
    else:
        raise ValueError(f"estimate must be an integer percentage, got {value!r}")
    if pct < PCT_MIN or pct > PCT_MAX:
        raise ValueError(f"estimate must be between {PCT_MIN} and {PCT_MAX}, got {pct}")
    return pct


def percent_to_probability(pct: int) -> float:
    """Convert a validated percentage to a probability in (0, 1)."""
    return pct / 100.0


def probability_to_percent(prob: float) -> int:
    """Round a probability back to the nearest integer percentage."""
    return int(round(float(prob) * 100.0))


__all__ = [
    "PCT_MIN",
    "PCT_MAX",
    "coerce_percentage",
    "percent_to_probability",
    "probability_to_percent",
]
