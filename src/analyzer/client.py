# src/analyzer/client.py — v1
"""Analyzer client: one backend call, one tagged result, no retries."""

from __future__ import annotations

import logging
import time
from typing import Any

from codeauditor.analyzer.base_backend import BaseAnalysisBackend
from codeauditor.analyzer.classifier import classify
from codeauditor.analyzer.models import (
    AnalysisError,
    AnalysisRequest,
    AnalysisResult,
    AnalysisSuccess,
    ErrorCode,
)

logger = logging.getLogger(__name__)


class AnalyzerClient:
    """Narrow boundary over an analysis backend.

    Args:
        backend: Backend adapter to call.
        log_context: Extra fields forwarded to the backend with every call.
    """

    def __init__(
        self,
        backend: BaseAnalysisBackend,
        log_context: dict[str, Any] | None = None,
    ) -> None:
        self._backend = backend
        self._log_context = log_context or {}

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Send the request and classify the outcome.

        Backend exceptions are caught and classified from their text, so
        this never raises for backend failures.
        """
        start = time.monotonic()
        try:
            reply = await self._backend.chat(
                request.message,
                [],
                None,
                self._log_context,
                request.context_type,
                request.payload,
            )
        except Exception as e:
            code = classify(getattr(e, "code", None), str(e))
            logger.warning(
                "Backend %s raised %s (%s): %s",
                self._backend.provider_name, type(e).__name__, code, e,
            )
            return AnalysisError(message=str(e) or type(e).__name__, code=code)

        latency_ms = int((time.monotonic() - start) * 1000)
        if reply.success and reply.message:
            logger.debug(
                "Backend reply for %d items in %d ms (%d chars)",
                len(request.batch), latency_ms, len(reply.message),
            )
            return AnalysisSuccess(message=reply.message)

        if reply.success:
            return AnalysisError(message="Unknown error", code=ErrorCode.OTHER)

        text = reply.error or reply.message or "Unknown error"
        code = classify(reply.code, f"{reply.error or ''} {reply.message or ''}")
        logger.info("Backend error (%s) after %d ms: %s", code, latency_ms, text)
        return AnalysisError(message=text, code=code)
