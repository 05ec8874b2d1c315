"""Audit tools for resolution events.

Provides:
- Deterministic hashing of allocations so stored results can be verified
- Structured logging of submissions, resolutions and invariant failures
"""

from __future__ import annotations

__all__: list[str] = []
