"""Deterministic hashing for allocation results.

The hash of an allocation is stored on the question when it resolves, so the
award rows read back later can be checked against what was computed.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable

from selfresolve.market.types import Allocation, Award

# Rounding applied to floats before hashing so storage round-trips hash equal
HASH_FLOAT_PLACES = 10


def _serialize_value(val: Any) -> Any:
    """Serialize a value for deterministic hashing."""
    if val is None:
        return None
    elif isinstance(val, Enum):
        return val.value
    elif isinstance(val, bool):
        return val
    elif isinstance(val, float):
        return repr(round(val, HASH_FLOAT_PLACES))
    elif isinstance(val, Decimal):
        return str(val)
    elif isinstance(val, datetime):
        return val.isoformat()
    elif isinstance(val, dict):
        return {str(k): _serialize_value(v) for k, v in sorted(val.items(), key=lambda kv: str(kv[0]))}
    elif isinstance(val, (list, tuple)):
        return [_serialize_value(v) for v in val]
    elif isinstance(val, (int, str)):
        return val
    else:
        return str(val)


def compute_hash(data: Dict[str, Any]) -> str:
    """Compute deterministic SHA256 hash of a dictionary.

    Args:
        data: Dictionary to hash

    Returns:
        Hex-encoded SHA256 hash (64 characters)
    """
    serialized = _serialize_value(data)
    canonical = json.dumps(serialized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_awards_hash(question_id: int, awards: Iterable[Award]) -> str:
    """Hash of a question's awards in submission order."""
    rows = [
        {
            "participant_id": a.participant_id,
            "position": a.position,
            "value_pct": a.value_pct,
            "tier": a.tier,
            "amount": a.amount,
        }
        for a in sorted(awards, key=lambda a: a.position)
    ]
    return compute_hash({"question_id": question_id, "awards": rows})


def compute_allocation_hash(question_id: int, allocation: Allocation) -> str:
    return compute_awards_hash(question_id, allocation.awards)


__all__ = [
    "compute_hash",
    "compute_awards_hash",
    "compute_allocation_hash",
]
