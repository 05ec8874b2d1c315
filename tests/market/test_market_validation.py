"""Tests for request validation."""

import pytest

from selfresolve.market.types import QuestionParams, ValidationError
from selfresolve.market.validation import (
    K_MAX,
    validate_estimate_pct,
    validate_params,
    validate_question_text,
    validate_username,
)


class TestValidateParams:
    def test_valid(self):
        assert validate_params(10, 2, 0.3) == QuestionParams(reward=10.0, k=2, alpha=0.3)

    def test_alpha_one_allowed(self):
        assert validate_params(1.5, 1, 1.0).alpha == 1.0

    def test_alpha_zero_rejected(self):
        """Scenario B: alpha must be in (0, 1]."""
        with pytest.raises(ValidationError, match="alpha"):
            validate_params(10, 1, 0)

    @pytest.mark.parametrize("alpha", [-0.1, 1.01, float("nan"), float("inf")])
    def test_alpha_out_of_range(self, alpha):
        with pytest.raises(ValidationError):
            validate_params(10, 1, alpha)

    @pytest.mark.parametrize("reward", [0, -1, float("nan"), "x", None, True])
    def test_bad_reward(self, reward):
        with pytest.raises(ValidationError):
            validate_params(reward, 1, 0.5)

    @pytest.mark.parametrize("k", [0, -2, 1.5, True, "two", None, 2**31, 10**20, 1e20])
    def test_bad_k(self, k):
        with pytest.raises(ValidationError):
            validate_params(10, k, 0.5)

    def test_largest_storable_k_accepted(self):
        assert validate_params(10, K_MAX, 0.5).k == K_MAX

    def test_integral_float_k_accepted(self):
        assert validate_params(10, 3.0, 0.5).k == 3

    def test_numeric_strings_accepted(self):
        assert validate_params("2.5", "2", "0.5") == QuestionParams(reward=2.5, k=2, alpha=0.5)


class TestValidateEstimate:
    @pytest.mark.parametrize("value", [1, 50, 99, "42", 42.0])
    def test_valid(self, value):
        assert 1 <= validate_estimate_pct(value) <= 99

    @pytest.mark.parametrize("value", [0, 100, 42.5, False, None, "nope", float("nan")])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_estimate_pct(value)


class TestValidateText:
    def test_strips(self):
        assert validate_question_text("  Will it rain?  ") == "Will it rain?"

    def test_empty(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_question_text("   ")

    def test_too_long(self):
        with pytest.raises(ValidationError, match="exceeds"):
            validate_question_text("x" * 11, max_length=10)

    def test_not_string(self):
        with pytest.raises(ValidationError):
            validate_question_text(123)


def test_validate_username():
    assert validate_username(" alice ") == "alice"
    with pytest.raises(ValidationError):
        validate_username("")
    with pytest.raises(ValidationError):
        validate_username("a" * 65)
