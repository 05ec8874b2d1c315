"""Resolution and scoring engine for self-resolving questions.

- Cross-entropy market scoring (CE-MSR) against the preceding estimate
- Memoryless stochastic stopping rule with a hard capacity
- Two-tier reward allocation (flat bonus for the last k, CE-MSR for the rest)
- In-memory question lifecycle state machine
- Deterministic hashing and audit logging of resolutions
"""

from __future__ import annotations

__all__: list[str] = []
