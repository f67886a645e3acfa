# src/api/models.py — v2
"""API-level models: ScanOptions and ScanReport."""

from __future__ import annotations

from pydantic import BaseModel, Field

from codeauditor.core.models import CompiledResults, ScanMode, ScanState


class ScanOptions(BaseModel):
    """Caller-provided options for one scan."""

    scan_id: str | None = None
    mode: ScanMode = "full"
    selection: list[str] = Field(default_factory=list)


class ScanReport(BaseModel):
    """Return value of the facade scan functions."""

    scan_id: str
    state: ScanState
    results: CompiledResults | None = None
    analyze_calls: int = 0
    splits: int = 0
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state.status == "completed"
