# src/analyzer/classifier.py — v2
"""Backend error classification.

The explicit ``code`` reported by the backend wins; otherwise the error
text is matched case-insensitively against known phrases. The runner's
abort/split/retry policy depends entirely on this mapping.
"""

from __future__ import annotations

from codeauditor.analyzer.models import ErrorCode

_CODE_MAP: dict[str, ErrorCode] = {
    "RATE_LIMIT_EXCEEDED": ErrorCode.RATE_LIMIT,
    "RATE_LIMIT": ErrorCode.RATE_LIMIT,
    "QUOTA_EXCEEDED": ErrorCode.QUOTA,
    "QUOTA": ErrorCode.QUOTA,
    "PAYLOAD_TOO_LARGE": ErrorCode.TOO_LARGE,
    "TOO_LARGE": ErrorCode.TOO_LARGE,
    "413": ErrorCode.TOO_LARGE,
    "429": ErrorCode.RATE_LIMIT,
}

# Checked in order; quota before rate limit so "quota exceeded (429)" is QUOTA.
_PHRASES: tuple[tuple[ErrorCode, tuple[str, ...]], ...] = (
    (ErrorCode.QUOTA, ("quota exceeded",)),
    (ErrorCode.RATE_LIMIT, ("rate limit", "429", "too many requests")),
    (ErrorCode.TOO_LARGE, ("413", "too large", "request too large", "tpm")),
)


def classify(code: str | None, text: str | None) -> ErrorCode:
    """Map a backend error code and/or message to an ErrorCode."""
    if code:
        mapped = _CODE_MAP.get(str(code).strip().upper())
        if mapped is not None:
            return mapped

    lowered = (text or "").lower()
    for error_code, phrases in _PHRASES:
        if any(p in lowered for p in phrases):
            return error_code
    return ErrorCode.OTHER
