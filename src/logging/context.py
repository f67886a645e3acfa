# src/logging/context.py — v2
"""Contextual logging support — attach scan_id, scan_type, batch to log records."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

# Context variables for structured logging, set per scan execution.
_scan_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id", default=None
)
_scan_type: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_type", default=None
)
_batch: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    scan_id: str | None = None
    scan_type: str | None = None
    batch: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        scan_id=_scan_id.get(),
        scan_type=_scan_type.get(),
        batch=_batch.get(),
    )


def set_scan_context(scan_id: str, scan_type: str) -> None:
    """Set scan-level context (called once per scan execution)."""
    _scan_id.set(scan_id)
    _scan_type.set(scan_type)


@contextmanager
def batch_context(label: str) -> Iterator[None]:
    """Tag every record emitted inside the block with a batch label (e.g. "3/12")."""
    token = _batch.set(label)
    try:
        yield
    finally:
        _batch.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _scan_id.set(None)
    _scan_type.set(None)
    _batch.set(None)
