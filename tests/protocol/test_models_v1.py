import pytest
from pydantic import ValidationError as PydanticValidationError

from selfresolve.market.types import (
    ConcurrencyError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from selfresolve.protocol.models.v1 import (
    APIVersion,
    EstimateView,
    QuestionParameters,
    ResultsView,
    error_response,
)
from selfresolve.shared.enums import RewardTier


@pytest.mark.parametrize(
    "exc, code",
    [
        (ValidationError("bad"), "validation_error"),
        (NotFoundError("missing"), "not_found"),
        (InvariantViolation("broken"), "invariant_violation"),
        (ConcurrencyError("busy"), "conflict"),
        (RuntimeError("boom"), "internal_error"),
    ],
)
def test_error_response_codes(exc, code):
    resp = error_response(exc)
    assert resp.version is APIVersion.V1
    assert resp.error.code == code
    assert resp.error.message == str(exc)
    assert resp.error.details is None


def test_error_response_details():
    resp = error_response(NotFoundError("q"), details={"question_id": 3})
    assert resp.model_dump(mode="json")["error"]["details"] == {"question_id": 3}


def test_question_parameters_bounds():
    QuestionParameters(R=1, k=1, alpha=1.0)
    with pytest.raises(PydanticValidationError):
        QuestionParameters(R=0, k=1, alpha=0.5)
    with pytest.raises(PydanticValidationError):
        QuestionParameters(R=1, k=0, alpha=0.5)
    with pytest.raises(PydanticValidationError):
        QuestionParameters(R=1, k=1, alpha=0)


def test_estimate_view_range_and_extra_fields():
    view = EstimateView(participant_id=1, value=50, position=0, extra="ignored")
    assert not hasattr(view, "extra")
    with pytest.raises(PydanticValidationError):
        EstimateView(participant_id=1, value=100, position=0)


def test_results_view_serializes_tier():
    view = ResultsView(
        question_id=1,
        final_estimate=70,
        effective_k=1,
        per_participant=[{"participant_id": 2, "estimate": 70, "reward": 3.0, "tier": "bonus"}],
    )
    assert view.per_participant[0].tier is RewardTier.BONUS
    assert view.model_dump(mode="json")["per_participant"][0]["tier"] == "bonus"
