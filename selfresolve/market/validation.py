"""Input validation for question creation and estimate submission.

All validation happens before anything reaches the lifecycle or storage.
Rejected input raises ValidationError and never mutates state.
"""

from __future__ import annotations

import math
import numbers

from selfresolve.shared.probability import coerce_percentage

from .types import QuestionParams, ValidationError

DEFAULT_MAX_TEXT = 2000
# Largest k a signed 32-bit INTEGER column holds
K_MAX = 2**31 - 1


def _finite_real(value: object, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, str)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if math.isnan(f):
        raise ValidationError(f"{name} is NaN")
    if math.isinf(f):
        raise ValidationError(f"{name} is infinite")
    return f


def validate_params(reward: object, k: object, alpha: object) -> QuestionParams:
    """Validate the (R, k, alpha) triple.

    Rejects:
    - R that is not a finite number > 0
    - k that is not an integer in [1, K_MAX] (bools included)
    - alpha outside (0, 1]
    """
    r = _finite_real(reward, "R")
    if r <= 0.0:
        raise ValidationError(f"R must be > 0, got {r}")

    if isinstance(k, bool):
        raise ValidationError(f"k must be an integer, got {k!r}")
    if isinstance(k, numbers.Integral):
        k_int = int(k)
    else:
        k_f = _finite_real(k, "k")
        if not k_f.is_integer():
            raise ValidationError(f"k must be an integer, got {k!r}")
        k_int = int(k_f)
    if k_int < 1:
        raise ValidationError(f"k must be >= 1, got {k_int}")
    if k_int > K_MAX:
        raise ValidationError(f"k must be <= {K_MAX}, got {k_int}")

    a = _finite_real(alpha, "alpha")
    if not (0.0 < a <= 1.0):
        raise ValidationError(f"alpha must be in (0, 1], got {a}")

    return QuestionParams(reward=r, k=k_int, alpha=a)


def validate_estimate_pct(value: object) -> int:
    """Validate an external estimate (integer percentage 1..99)."""
    try:
        return coerce_percentage(value)
    except ValueError as e:
        raise ValidationError(str(e))


def validate_question_text(text: object, max_length: int = DEFAULT_MAX_TEXT) -> str:
    if not isinstance(text, str):
        raise ValidationError("question text must be a string")
    cleaned = text.strip()
    if not cleaned:
        raise ValidationError("question text is empty")
    if len(cleaned) > max_length:
        raise ValidationError(f"question text exceeds {max_length} characters")
    return cleaned


def validate_username(username: object) -> str:
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username is empty")
    cleaned = username.strip()
    if len(cleaned) > 64:
        raise ValidationError("username exceeds 64 characters")
    return cleaned


__all__ = [
    "K_MAX",
    "validate_params",
    "validate_estimate_pct",
    "validate_question_text",
    "validate_username",
]
