# src/storage/issue_store.py — v1
"""Append-only issue stores (durable owners of validated findings)."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from codeauditor.core.models import Issue

logger = logging.getLogger(__name__)


class BaseIssueStore(ABC):
    """Append-only sink for issues."""

    @abstractmethod
    async def create(self, issue: Issue, scan_id: str) -> None:
        """Persist one issue for a scan."""


class MemoryIssueStore(BaseIssueStore):
    def __init__(self) -> None:
        self.records: list[tuple[str, Issue]] = []

    async def create(self, issue: Issue, scan_id: str) -> None:
        self.records.append((scan_id, issue))

    def for_scan(self, scan_id: str) -> list[Issue]:
        return [issue for sid, issue in self.records if sid == scan_id]


class JsonlIssueStore(BaseIssueStore):
    """Appends one JSON object per issue to a JSON Lines file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    async def create(self, issue: Issue, scan_id: str) -> None:
        record = {
            "scan_id": scan_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            **issue.model_dump(mode="json"),
        }
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, default=str) + "\n")

    def read_all(self, scan_id: str | None = None) -> list[Issue]:
        """Load stored issues, optionally for one scan."""
        if not self._path.exists():
            return []
        issues: list[Issue] = []
        with self._path.open(encoding="utf-8") as fh:
            for line in fh:
                if not line.strip():
                    continue
                record = json.loads(line)
                if scan_id is not None and record.get("scan_id") != scan_id:
                    continue
                record.pop("scan_id", None)
                record.pop("created_at", None)
                issues.append(Issue.model_validate(record))
        return issues
