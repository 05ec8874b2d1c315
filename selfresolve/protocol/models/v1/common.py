"""API v1 common models and error envelope.

These models are public contract shapes returned to the transport layer.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from selfresolve.market.types import MarketError


class APIVersion(str, Enum):
    V1 = "v1"


class APIError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str = Field(..., description="Stable machine-readable error code")
    message: str = Field(..., description="Human-friendly error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Optional structured error details"
    )


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version: APIVersion = Field(default=APIVersion.V1)
    error: APIError


class ResponseMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version: APIVersion = Field(default=APIVersion.V1)
    request_id: Optional[str] = Field(
        default=None, description="Request identifier for tracing"
    )


def error_response(exc: Exception, details: Optional[Dict[str, Any]] = None) -> ErrorResponse:
    """Map an engine error to the v1 envelope. Unknown exceptions become internal_error."""
    code = exc.code if isinstance(exc, MarketError) else "internal_error"
    return ErrorResponse(error=APIError(code=code, message=str(exc), details=details))


__all__ = [
    "APIVersion",
    "APIError",
    "ErrorResponse",
    "ResponseMeta",
    "error_response",
]
