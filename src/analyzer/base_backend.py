# src/analyzer/base_backend.py — v1
"""Abstract analysis backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from codeauditor.analyzer.models import BackendReply


class BaseAnalysisBackend(ABC):
    """External service that reviews a payload and answers in free text."""

    @abstractmethod
    async def chat(
        self,
        message: str,
        history: list[dict[str, str]] | None = None,
        session_context: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
        context_type: str = "codebase_scan",
        payload: dict[str, Any] | None = None,
    ) -> BackendReply:
        """Send one analysis request.

        Implementations report failures through ``BackendReply(success=False)``
        with an optional machine ``code`` (e.g. ``RATE_LIMIT_EXCEEDED``).
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai, ...)."""
