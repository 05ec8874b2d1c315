from .common import APIError, APIVersion, ErrorResponse, ResponseMeta, error_response
from .market import (
    EstimateView,
    LeaderboardEntry,
    ParticipantResult,
    ParticipantTotal,
    QuestionParameters,
    QuestionView,
    ResultsView,
    ScoreCurvePoint,
    SubmitResult,
)

__all__ = [
    "APIError",
    "APIVersion",
    "ErrorResponse",
    "ResponseMeta",
    "error_response",
    "EstimateView",
    "LeaderboardEntry",
    "ParticipantResult",
    "ParticipantTotal",
    "QuestionParameters",
    "QuestionView",
    "ResultsView",
    "ScoreCurvePoint",
    "SubmitResult",
]
