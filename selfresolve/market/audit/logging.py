"""Structured audit logging for the resolution engine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from selfresolve.market.types import Allocation


class ResolutionAuditLogger:
    """Structured logger for the submission and resolution trail."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("selfresolve.audit")

    def log_question_created(self, question_id: int, reward: float, k: int, alpha: float) -> None:
        self.logger.info({
            "event": "question_created",
            "question_id": question_id,
            "R": reward,
            "k": k,
            "alpha": alpha,
        })

    def log_submission(
        self,
        question_id: int,
        participant_id: int,
        position: int,
        resolved: bool,
        attempt: int = 1,
    ) -> None:
        self.logger.debug({
            "event": "estimate_accepted",
            "question_id": question_id,
            "participant_id": participant_id,
            "position": position,
            "resolved": resolved,
            "attempt": attempt,
        })

    def log_resolution(self, question_id: int, allocation: Allocation, allocation_hash: str) -> None:
        """Log a resolution event.

        The full hash is logged so independent replays can be compared.
        """
        self.logger.info({
            "event": "question_resolved",
            "question_id": question_id,
            "n_estimates": len(allocation.awards),
            "effective_k": allocation.effective_k,
            "bonus_total": round(allocation.bonus_total, 6),
            "scored_total": round(allocation.scored_total, 6),
            "allocation_hash": allocation_hash,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        events = logging.getLogger("event")
        if hasattr(events, "event"):
            events.event({"question_resolved": question_id, "allocation_hash": allocation_hash})

    def log_conflict(self, question_id: int, attempt: int, reason: str) -> None:
        self.logger.warning({
            "event": "submission_conflict_retry",
            "question_id": question_id,
            "attempt": attempt,
            "reason": reason,
        })

    def log_invariant_violation(self, question_id: Optional[int], error: Exception) -> None:
        self.logger.error({
            "event": "invariant_violation",
            "question_id": question_id,
            "error": str(error),
        }, exc_info=error)


_audit_logger: Optional[ResolutionAuditLogger] = None


def get_audit_logger() -> ResolutionAuditLogger:
    """Get or create the default audit logger."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = ResolutionAuditLogger()
    return _audit_logger


__all__ = [
    "ResolutionAuditLogger",
    "get_audit_logger",
]
