"""Tests for the in-memory question lifecycle."""

from datetime import datetime, timezone

import pytest

from conftest import never_stop_rule, stop_on_call
from selfresolve.market.lifecycle import QuestionLifecycle
from selfresolve.market.stopping import StoppingRule
from selfresolve.market.types import (
    InvariantViolation,
    QuestionParams,
    QuestionState,
    ValidationError,
)
from selfresolve.shared.enums import QuestionStatus, RewardTier


def new_state(reward=10.0, k=2, alpha=0.5):
    return QuestionState(question_id=1, params=QuestionParams(reward=reward, k=k, alpha=alpha))


class TestSubmit:
    def test_open_submission_records_estimate(self):
        lifecycle = QuestionLifecycle(stopping_rule=never_stop_rule())
        state = new_state()
        outcome = lifecycle.submit(state, 1, 40)
        assert outcome.resolved is False
        assert outcome.allocation is None
        assert outcome.estimate.position == 0
        assert state.status is QuestionStatus.OPEN
        assert [e.value_pct for e in state.estimates] == [40]

    def test_alpha_one_resolves_first_submission(self):
        """Scenario A: R=10, k=2, alpha=1.0."""
        lifecycle = QuestionLifecycle()
        state = new_state(reward=10.0, k=2, alpha=1.0)
        outcome = lifecycle.submit(state, 1, 50)
        assert outcome.resolved is True
        assert state.status is QuestionStatus.RESOLVED
        assert outcome.allocation.deltas() == {1: 10.0}
        assert outcome.allocation.awards[0].tier is RewardTier.BONUS

    def test_resolves_when_rule_fires(self):
        lifecycle = QuestionLifecycle(stopping_rule=stop_on_call(3))
        state = new_state(k=1)
        assert lifecycle.submit(state, 1, 50).resolved is False
        assert lifecycle.submit(state, 2, 60).resolved is False
        outcome = lifecycle.submit(state, 3, 90)
        assert outcome.resolved is True
        assert len(outcome.allocation.awards) == 3

    def test_capacity_resolves(self):
        lifecycle = QuestionLifecycle(stopping_rule=never_stop_rule(), capacity=3)
        state = new_state()
        results = [lifecycle.submit(state, pid, 50).resolved for pid in (1, 2, 3)]
        assert results == [False, False, True]

    def test_timestamp_is_recorded(self):
        lifecycle = QuestionLifecycle(stopping_rule=never_stop_rule())
        state = new_state()
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert lifecycle.submit(state, 1, 40, ts).estimate.submitted_at == ts


class TestRejections:
    def test_duplicate_participant_rejected_without_change(self):
        lifecycle = QuestionLifecycle(stopping_rule=never_stop_rule())
        state = new_state()
        lifecycle.submit(state, 1, 40)
        with pytest.raises(ValidationError, match="already submitted"):
            lifecycle.submit(state, 1, 60)
        assert len(state.estimates) == 1

    def test_resolved_question_rejected(self):
        lifecycle = QuestionLifecycle()
        state = new_state(alpha=1.0)
        lifecycle.submit(state, 1, 40)
        with pytest.raises(ValidationError, match="already resolved"):
            lifecycle.submit(state, 2, 60)
        assert len(state.estimates) == 1

    @pytest.mark.parametrize("value", [0, 100, -5, 50.5, "abc", None, True])
    def test_out_of_range_value_rejected(self, value):
        lifecycle = QuestionLifecycle(stopping_rule=never_stop_rule())
        state = new_state()
        with pytest.raises(ValidationError):
            lifecycle.submit(state, 1, value)
        assert state.estimates == []

    def test_failed_allocation_leaves_state_unchanged(self):
        class BrokenAllocator:
            def allocate(self, sequence, params):
                raise InvariantViolation("boom")

        lifecycle = QuestionLifecycle(stopping_rule=StoppingRule(), allocator=BrokenAllocator())
        state = new_state(alpha=1.0)
        with pytest.raises(InvariantViolation):
            lifecycle.submit(state, 1, 40)
        assert state.estimates == []
        assert state.status is QuestionStatus.OPEN

    def test_open_state_over_capacity_resolves_on_next_estimate(self):
        lifecycle = QuestionLifecycle(stopping_rule=never_stop_rule(), capacity=2)
        state = new_state()
        for pid in (1, 2, 3):
            state.append(pid, 10 * pid)
        outcome = lifecycle.submit(state, 4, 40)
        assert outcome.resolved is True
        assert outcome.estimate.position == 3
        assert len(outcome.allocation.awards) == 4
        assert state.status is QuestionStatus.RESOLVED


class TestQuestionState:
    def test_append_after_resolution_is_invariant_violation(self):
        state = new_state()
        state.append(1, 50)
        state.mark_resolved()
        with pytest.raises(InvariantViolation):
            state.append(2, 50)

    def test_cannot_resolve_empty(self):
        with pytest.raises(InvariantViolation):
            new_state().mark_resolved()

    def test_cannot_resolve_twice(self):
        state = new_state()
        state.append(1, 50)
        state.mark_resolved()
        with pytest.raises(InvariantViolation):
            state.mark_resolved()

    def test_participants_pairwise_distinct_over_many_runs(self):
        lifecycle = QuestionLifecycle(stopping_rule=StoppingRule.seeded(5))
        for _ in range(30):
            state = new_state(alpha=0.2)
            pid = 0
            while not state.resolved:
                pid += 1
                lifecycle.submit(state, pid, 50)
            ids = [e.participant_id for e in state.estimates]
            assert len(ids) == len(set(ids))
            assert 1 <= len(ids) <= lifecycle.capacity
