# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

Severity = Literal["critical", "high", "medium", "low"]
Category = Literal["security", "quality", "performance", "best_practices", "bug"]
ScanType = Literal["code", "schema", "data"]
ScanMode = Literal["full", "selective"]
ScanStatus = Literal["queued", "discovering", "scanning", "completed", "failed"]

SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low")
CATEGORIES: tuple[str, ...] = (
    "security", "quality", "performance", "best_practices", "bug",
)
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


# === WORK UNITS ===


class WorkItem(BaseModel):
    """One discovered unit of analysis (a source file or a table)."""

    model_config = ConfigDict(frozen=True)

    id: str
    size_bytes: int
    path: str | None = None
    payload: Any = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def token_estimate(self) -> int:
        """Cheap proxy for backend cost: roughly 1 token per 4 bytes."""
        return self.size_bytes // 4


class Batch(BaseModel):
    """Ordered group of work items sent to the backend together."""

    index: int = 0
    items: list[WorkItem] = Field(default_factory=list)

    @property
    def byte_total(self) -> int:
        return sum(i.size_bytes for i in self.items)

    @property
    def token_total(self) -> int:
        return sum(i.token_estimate for i in self.items)

    @property
    def ids(self) -> list[str]:
        return [i.id for i in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def split(self) -> tuple[Batch, Batch]:
        """Halve the batch, keeping item order (first half is the smaller one)."""
        mid = len(self.items) // 2
        return (
            Batch(index=self.index, items=self.items[:mid]),
            Batch(index=self.index, items=self.items[mid:]),
        )


# === FINDINGS ===


class Issue(BaseModel):
    """A single normalized, validated finding."""

    subject: str
    line: int | None = None
    severity: Severity = "medium"
    category: Category = "quality"
    type: str = "general"
    message: str = ""
    code_snippet: str | None = None
    location: dict[str, Any] = Field(default_factory=dict)
    title: str | None = None
    suggestion: str = ""


class ItemFailure(BaseModel):
    """Soft, per-item analysis failure recorded without aborting the scan."""

    subject: str
    reason: str


class BatchOutcome(BaseModel):
    """Everything one (sub-)batch produced: validated issues or a failure."""

    subjects: list[str]
    issues: list[Issue] = Field(default_factory=list)
    failed: bool = False
    error: str | None = None


class ScanSummary(BaseModel):
    """Aggregate counts over the de-duplicated issues of a scan."""

    total_subjects: int = 0
    subjects_with_issues: int = 0
    total_issues: int = 0
    duplicates_removed: int = 0
    by_severity: dict[str, int] = Field(
        default_factory=lambda: {s: 0 for s in SEVERITIES}
    )
    by_category: dict[str, int] = Field(
        default_factory=lambda: {c: 0 for c in CATEGORIES}
    )


class CompiledResults(BaseModel):
    """Output of the compiler: de-duplicated issues plus their summary."""

    issues: list[Issue] = Field(default_factory=list)
    summary: ScanSummary = Field(default_factory=ScanSummary)


# === STATE ===


class ScanState(BaseModel):
    """Progress record for one scan, read by external pollers."""

    scan_id: str
    scan_type: ScanType = "code"
    status: ScanStatus = "queued"
    progress_pct: int = Field(default=0, ge=0, le=100)
    total_items: int = 0
    processed_items: int = 0
    total_batches: int = 0
    processed_batches: int = 0
    message: str = ""
    error: str | None = None
    rate_limit_exceeded: bool = False
    total_issues_found: int = 0
    issues_saved: int = 0
    failed_items: list[ItemFailure] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
