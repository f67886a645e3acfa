# src/pipeline/retry.py — v1
"""Transient-error retry policy for backend calls.

Only ``OTHER`` errors are retried here. Rate limit and quota errors are
raised as RateLimitError, too-large errors as SizeError; the runner
decides what to do with those.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from codeauditor.analyzer.models import AnalysisError, AnalysisResult, ErrorCode
from codeauditor.core.errors import RateLimitError, SizeError, TransientError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry ceiling and backoff for transient backend errors.

    Delay before retry ``n`` (1-based) is
    ``base_delay_s * n * backoff_factor ** (n - 1)``: 2s, 4s, 6s with the
    defaults.
    """

    max_retries: int = 3
    base_delay_s: float = 2.0
    backoff_factor: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.base_delay_s * attempt * (self.backoff_factor ** (attempt - 1))


def raise_for_error(result: AnalysisError) -> None:
    """Translate a non-transient error result into its exception."""
    if result.code.is_fatal:
        raise RateLimitError(result.message, code=result.code.value)
    if result.code is ErrorCode.TOO_LARGE:
        raise SizeError(result.message)


async def call_with_retry(
    call: Callable[[], Awaitable[AnalysisResult]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
    on_retry: Callable[[int, AnalysisError], Awaitable[None]] | None = None,
) -> str:
    """Run ``call`` until it succeeds or transient retries are exhausted.

    Returns:
        The successful analysis text.

    Raises:
        RateLimitError: Rate limit or quota (never retried).
        SizeError: Payload too large (never retried).
        TransientError: Retry ceiling reached.
    """
    attempt = 0
    while True:
        result = await call()
        if not isinstance(result, AnalysisError):
            return result.message

        raise_for_error(result)

        attempt += 1
        if attempt > policy.max_retries:
            raise TransientError(
                f"Backend failed after {policy.max_retries} retries: {result.message}"
            )
        delay = policy.delay(attempt)
        logger.warning(
            "Transient backend error (attempt %d/%d), retrying in %.1fs: %s",
            attempt, policy.max_retries, delay, result.message,
        )
        if on_retry is not None:
            await on_retry(attempt, result)
        await sleep(delay)
