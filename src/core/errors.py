# src/core/errors.py — v1
"""Pipeline exception hierarchy.

Fatal: DiscoveryError, RateLimitError (scan -> failed).
Recoverable: SizeError (bisect), TransientError (retry with backoff).
Non-fatal: ParseError (batch text discarded), IssueValidationError (issue dropped).
"""

from __future__ import annotations


class AuditError(Exception):
    """Base class for all pipeline errors."""


class DiscoveryError(AuditError):
    """Scan root or schema introspector unreachable."""


class RateLimitError(AuditError):
    """Rate limit or quota violation reported by the analysis backend.

    The backend message is preserved verbatim in ``str(exc)``.
    """

    def __init__(self, message: str, code: str = "RATE_LIMIT") -> None:
        self.code = code
        super().__init__(message)


class SizeError(AuditError):
    """Payload too large for the backend."""


class TransientError(AuditError):
    """Any other backend failure; worth retrying."""


class ParseError(AuditError):
    """No credible JSON could be extracted from the backend response."""


class IssueValidationError(AuditError):
    """Reported line/snippet cannot be reconciled with the real source."""
