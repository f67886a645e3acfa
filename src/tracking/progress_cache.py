# src/tracking/progress_cache.py — v1
"""Ephemeral TTL'd key/value store for scan progress and results.

Values are JSON-compatible dicts. Updates are read-modify-write by the
single runner that owns a scan id; no locking is done here.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


class BaseProgressCache(ABC):
    """Unified interface for progress cache backends."""

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the stored value, or None when missing or expired."""

    @abstractmethod
    async def put(self, key: str, value: dict[str, Any], ttl_s: int) -> None:
        """Store a value that expires after ``ttl_s`` seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value (no-op when missing)."""


class MemoryProgressCache(BaseProgressCache):
    """In-process cache with lazy TTL eviction (default backend, tests)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> dict[str, Any] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return json.loads(payload)

    async def put(self, key: str, value: dict[str, Any], ttl_s: int) -> None:
        # Stored serialized so callers never share mutable state with the cache
        self._data[key] = (self._clock() + ttl_s, json.dumps(value, default=str))

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonProgressCache(BaseProgressCache):
    """File-based cache: one JSON file per key with an absolute expiry."""

    def __init__(self, root: str | Path, clock: Callable[[], float] = time.time) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    async def get(self, key: str) -> dict[str, Any] | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read progress entry %s: %s", key, e)
            return None
        if self._clock() >= record.get("expires_at", 0):
            path.unlink(missing_ok=True)
            return None
        return record.get("value")

    async def put(self, key: str, value: dict[str, Any], ttl_s: int) -> None:
        path = self._entry_path(key)
        record = {"expires_at": self._clock() + ttl_s, "value": value}
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(record, default=str), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        self._entry_path(key).unlink(missing_ok=True)

    def _entry_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_").replace(":", "__")
        return self._root / f"{safe_key}.json"
