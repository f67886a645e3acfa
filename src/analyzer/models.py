# src/analyzer/models.py — v1
"""Analyzer request/result models.

``AnalysisResult`` is a tagged union: callers match on ``kind`` (or
``isinstance``) instead of probing dict keys.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from codeauditor.core.models import Batch


class ErrorCode(StrEnum):
    """Classified backend failure."""

    RATE_LIMIT = "RATE_LIMIT"
    QUOTA = "QUOTA"
    TOO_LARGE = "TOO_LARGE"
    OTHER = "OTHER"

    @property
    def is_fatal(self) -> bool:
        """Account-level errors that abort the whole scan."""
        return self in (ErrorCode.RATE_LIMIT, ErrorCode.QUOTA)


ContextType = Literal["codebase_scan", "database_scan"]


class AnalysisRequest(BaseModel):
    """Instruction text plus structured payload bound to one batch."""

    message: str
    context_type: ContextType = "codebase_scan"
    payload: dict[str, Any] = Field(default_factory=dict)
    batch: Batch = Field(default_factory=Batch)


class AnalysisSuccess(BaseModel):
    kind: Literal["success"] = "success"
    message: str


class AnalysisError(BaseModel):
    kind: Literal["error"] = "error"
    message: str
    code: ErrorCode = ErrorCode.OTHER


AnalysisResult = Annotated[
    Union[AnalysisSuccess, AnalysisError], Field(discriminator="kind")
]


class BackendReply(BaseModel):
    """Raw reply of an analysis backend ``chat`` call."""

    success: bool
    message: str | None = None
    error: str | None = None
    code: str | None = None
