"""Tests for two-tier reward allocation."""

import pytest

from selfresolve.market.allocation import RewardAllocator, effective_k
from selfresolve.market.scoring import score
from selfresolve.market.types import Estimate, InvariantViolation, QuestionParams
from selfresolve.shared.enums import RewardTier


def seq(*pcts):
    return [Estimate(participant_id=100 + i, value_pct=p, position=i) for i, p in enumerate(pcts)]


@pytest.fixture
def allocator():
    return RewardAllocator()


class TestEffectiveK:
    def test_caps_at_sequence_length(self):
        assert effective_k(2, 1) == 1
        assert effective_k(5, 3) == 3

    def test_uses_k_when_smaller(self):
        assert effective_k(1, 3) == 1


class TestAllocate:
    def test_single_estimate_all_bonus(self, allocator):
        """R=10, k=2, one estimate: the only participant is paid R."""
        result = allocator.allocate(seq(50), QuestionParams(reward=10.0, k=2, alpha=1.0))
        assert result.effective_k == 1
        assert result.deltas() == {100: 10.0}
        assert result.awards[0].tier is RewardTier.BONUS
        assert result.scored_total == 0.0

    def test_three_estimates_k1(self, allocator):
        """[0.5, 0.6, 0.9] with k=1: last gets R, first scores 0, second scores vs 0.5."""
        result = allocator.allocate(seq(50, 60, 90), QuestionParams(reward=10.0, k=1, alpha=0.5))
        deltas = result.deltas()
        assert deltas[100] == pytest.approx(0.0, abs=1e-12)
        assert deltas[101] == pytest.approx(score(0.6, 0.5, 0.5))
        assert deltas[102] == 10.0
        assert [a.tier for a in result.awards] == [RewardTier.SCORED, RewardTier.SCORED, RewardTier.BONUS]

    def test_reference_is_predecessor(self, allocator):
        result = allocator.allocate(seq(20, 70, 40, 40), QuestionParams(reward=3.0, k=2, alpha=0.5))
        assert result.awards[0].amount == pytest.approx(score(0.2, 0.5))
        assert result.awards[1].amount == pytest.approx(score(0.7, 0.2))
        assert result.awards[2].amount == 3.0
        assert result.awards[3].amount == 3.0

    def test_bonus_flat_regardless_of_value(self, allocator):
        result = allocator.allocate(seq(1, 99, 2, 98), QuestionParams(reward=7.5, k=3, alpha=0.5))
        bonus = [a.amount for a in result.awards if a.tier is RewardTier.BONUS]
        assert bonus == [7.5, 7.5, 7.5]

    @pytest.mark.parametrize("k", [1, 2, 5, 50])
    def test_sum_of_deltas(self, allocator, k):
        """Total equals effective_k * R plus the scored tier's scores."""
        estimates = seq(50, 35, 80, 62, 10, 44)
        params = QuestionParams(reward=4.0, k=k, alpha=0.5)
        result = allocator.allocate(estimates, params)
        eff = min(k, len(estimates))
        cutoff = len(estimates) - eff
        refs = [0.5] + [e.value for e in estimates[:-1]]
        scored = sum(score(estimates[i].value, refs[i]) for i in range(cutoff))
        assert result.total == pytest.approx(eff * 4.0 + scored)
        assert sum(result.deltas().values()) == pytest.approx(result.total)

    def test_one_award_per_participant(self, allocator):
        estimates = seq(50, 35, 80, 62)
        result = allocator.allocate(estimates, QuestionParams(reward=1.0, k=2, alpha=0.5))
        assert len(result.awards) == 4
        assert set(result.deltas()) == {e.participant_id for e in estimates}

    def test_empty_sequence_is_invariant_violation(self, allocator):
        with pytest.raises(InvariantViolation, match="empty"):
            allocator.allocate([], QuestionParams(reward=1.0, k=1, alpha=0.5))

    def test_repeated_participant_is_invariant_violation(self, allocator):
        bad = [
            Estimate(participant_id=1, value_pct=40, position=0),
            Estimate(participant_id=1, value_pct=60, position=1),
        ]
        with pytest.raises(InvariantViolation, match="more than once"):
            allocator.allocate(bad, QuestionParams(reward=1.0, k=1, alpha=0.5))

    def test_out_of_order_positions_rejected(self, allocator):
        bad = [
            Estimate(participant_id=1, value_pct=40, position=1),
            Estimate(participant_id=2, value_pct=60, position=0),
        ]
        with pytest.raises(InvariantViolation, match="position"):
            allocator.allocate(bad, QuestionParams(reward=1.0, k=1, alpha=0.5))

    def test_custom_prior(self):
        allocator = RewardAllocator(prior_belief=0.8)
        result = allocator.allocate(seq(70, 50), QuestionParams(reward=1.0, k=1, alpha=0.5))
        assert result.awards[0].amount == pytest.approx(score(0.7, 0.5, 0.8))
