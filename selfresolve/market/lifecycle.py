"""Question lifecycle state machine.

States: OPEN (initial) -> RESOLVED (terminal).

submit() is the only transition. It either records one estimate and leaves
the question OPEN, or records one estimate, allocates rewards and moves the
question to RESOLVED. A rejected or failed submission leaves the state
exactly as it was.

The lifecycle works on an in-memory QuestionState; persistence and mutual
exclusion belong to the caller (see selfresolve.service).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .allocation import RewardAllocator
from .stopping import StoppingRule
from .types import (
    N_MAX,
    QuestionState,
    SubmissionOutcome,
    ValidationError,
)
from .validation import validate_estimate_pct


class QuestionLifecycle:
    def __init__(
        self,
        stopping_rule: Optional[StoppingRule] = None,
        allocator: Optional[RewardAllocator] = None,
        capacity: int = N_MAX,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.stopping_rule = stopping_rule or StoppingRule()
        self.allocator = allocator or RewardAllocator()
        self.capacity = capacity

    def check_submission(self, state: QuestionState, participant_id: int, value: object) -> int:
        """Run every rejection check without touching state. Returns the validated percentage."""
        if state.resolved:
            raise ValidationError(f"question {state.question_id} is already resolved")
        pct = validate_estimate_pct(value)
        if state.has_participant(participant_id):
            raise ValidationError(
                f"participant {participant_id} already submitted an estimate for question {state.question_id}"
            )
        return pct

    def submit(
        self,
        state: QuestionState,
        participant_id: int,
        value: object,
        submitted_at: Optional[datetime] = None,
    ) -> SubmissionOutcome:
        pct = self.check_submission(state, participant_id, value)

        estimate = state.append(participant_id, pct, submitted_at)
        try:
            if not self.stopping_rule.should_stop(
                state.params.alpha, len(state.estimates), self.capacity
            ):
                return SubmissionOutcome(estimate=estimate, resolved=False)

            allocation = self.allocator.allocate(state.estimates, state.params)
            state.mark_resolved()
        except BaseException:
            state.estimates.pop()
            raise

        return SubmissionOutcome(estimate=estimate, resolved=True, allocation=allocation)


__all__ = ["QuestionLifecycle"]
