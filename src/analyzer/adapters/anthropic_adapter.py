# src/analyzer/adapters/anthropic_adapter.py — v1
"""Anthropic Claude adapter implementing BaseAnalysisBackend.

Uses the official anthropic SDK (imported lazily on first call). SDK
status errors are reported as failed replies with a machine code so the
analyzer client can classify them.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from codeauditor.analyzer.base_backend import BaseAnalysisBackend
from codeauditor.analyzer.models import BackendReply

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a senior code and database auditor. Report only real, actionable "
    "issues as a JSON array. Quote code exactly as it appears in the source."
)

_STATUS_CODES: dict[int, str] = {
    429: "RATE_LIMIT_EXCEEDED",
    413: "PAYLOAD_TOO_LARGE",
}


def render_user_content(message: str, payload: dict[str, Any] | None) -> str:
    """Inline the structured payload after the instruction text."""
    if not payload:
        return message
    return f"{message}\n\n```json\n{json.dumps(payload, indent=2, default=str)}\n```"


class AnthropicAdapter(BaseAnalysisBackend):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or "")
        return self.__client

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def chat(
        self,
        message: str,
        history: list[dict[str, str]] | None = None,
        session_context: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
        context_type: str = "codebase_scan",
        payload: dict[str, Any] | None = None,
    ) -> BackendReply:
        import anthropic

        messages = [
            {"role": m["role"], "content": m["content"]} for m in (history or [])
        ]
        messages.append({"role": "user", "content": render_user_content(message, payload)})

        start = time.monotonic()
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=SYSTEM_PROMPT,
                messages=messages,
                metadata={"user_id": str((log_context or {}).get("scan_id", "codeauditor"))},
            )
        except anthropic.APIStatusError as e:
            code = _STATUS_CODES.get(e.status_code)
            logger.warning("Anthropic API error %s (%s): %s", e.status_code, context_type, e)
            return BackendReply(success=False, error=str(e), code=code)
        except anthropic.APIConnectionError as e:
            return BackendReply(success=False, error=f"Connection error: {e}")

        latency_ms = int((time.monotonic() - start) * 1000)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        logger.debug(
            "Anthropic reply in %d ms (in=%d, out=%d tokens)",
            latency_ms, response.usage.input_tokens, response.usage.output_tokens,
        )
        return BackendReply(success=True, message=text)
