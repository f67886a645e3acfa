# src/tracking/history_store.py — v1
"""Durable scan history: the record that outlives the progress TTL."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class BaseHistoryStore(ABC):
    """Unified interface for history backends."""

    @abstractmethod
    async def find_by_scan_id(self, scan_id: str) -> dict[str, Any] | None:
        """Return the history record for a scan, if any."""

    @abstractmethod
    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a record; it must carry ``scan_id``."""

    @abstractmethod
    async def update(self, scan_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Merge ``fields`` into an existing record and return it.

        Raises:
            KeyError: If no record exists for ``scan_id``.
        """


class MemoryHistoryStore(BaseHistoryStore):
    """Dict-backed history (tests, one-shot CLI runs)."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def find_by_scan_id(self, scan_id: str) -> dict[str, Any] | None:
        record = self._records.get(scan_id)
        return dict(record) if record is not None else None

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        self._records[record["scan_id"]] = dict(record)
        return dict(record)

    async def update(self, scan_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        if scan_id not in self._records:
            raise KeyError(scan_id)
        self._records[scan_id].update(fields)
        return dict(self._records[scan_id])


class JsonHistoryStore(BaseHistoryStore):
    """One JSON file per scan under a history root."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def find_by_scan_id(self, scan_id: str) -> dict[str, Any] | None:
        path = self._record_path(scan_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        self._write(record["scan_id"], record)
        return record

    async def update(self, scan_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        record = await self.find_by_scan_id(scan_id)
        if record is None:
            raise KeyError(scan_id)
        record.update(fields)
        self._write(scan_id, record)
        return record

    def _write(self, scan_id: str, record: dict[str, Any]) -> None:
        path = self._record_path(scan_id)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(record, indent=2, default=str), encoding="utf-8")
        tmp.replace(path)

    def _record_path(self, scan_id: str) -> Path:
        safe_id = scan_id.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_id}.json"
