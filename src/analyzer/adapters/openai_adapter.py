# src/analyzer/adapters/openai_adapter.py — v1
"""OpenAI chat-completions adapter implementing BaseAnalysisBackend."""

from __future__ import annotations

import logging
import time
from typing import Any

from codeauditor.analyzer.adapters.anthropic_adapter import (
    SYSTEM_PROMPT,
    render_user_content,
)
from codeauditor.analyzer.base_backend import BaseAnalysisBackend
from codeauditor.analyzer.models import BackendReply

logger = logging.getLogger(__name__)


class OpenAIAdapter(BaseAnalysisBackend):
    """OpenAI GPT adapter (also works with compatible base URLs)."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str = "",
        base_url: str = "",
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url or None
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def provider_name(self) -> str:
        return "openai"

    async def chat(
        self,
        message: str,
        history: list[dict[str, str]] | None = None,
        session_context: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
        context_type: str = "codebase_scan",
        payload: dict[str, Any] | None = None,
    ) -> BackendReply:
        import openai

        client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        oai_messages: list[dict[str, Any]] = [{"role": "system", "content": SYSTEM_PROMPT}]
        for m in history or []:
            oai_messages.append({"role": m["role"], "content": m["content"]})
        oai_messages.append(
            {"role": "user", "content": render_user_content(message, payload)}
        )

        t0 = time.monotonic()
        try:
            resp = await client.chat.completions.create(
                model=self._model,
                messages=oai_messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except openai.RateLimitError as e:
            # OpenAI reports exhausted credit as 429 with code insufficient_quota
            body_code = getattr(e, "code", None)
            code = "QUOTA_EXCEEDED" if body_code == "insufficient_quota" else "RATE_LIMIT_EXCEEDED"
            return BackendReply(success=False, error=str(e), code=code)
        except openai.APIStatusError as e:
            code = "PAYLOAD_TOO_LARGE" if e.status_code == 413 else None
            return BackendReply(success=False, error=str(e), code=code)
        except openai.APIConnectionError as e:
            return BackendReply(success=False, error=f"Connection error: {e}")
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        logger.debug("OpenAI reply in %d ms (%s)", latency, context_type)
        return BackendReply(success=True, message=choice.message.content or "")
