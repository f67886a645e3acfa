# src/tracking/state_tracker.py — v1
"""Scan state tracking over the progress cache and the history store.

The progress cache holds the TTL'd record pollers read during a scan; the
history store keeps the durable copy, written at start, on status changes
and at terminal transitions. Exactly one runner writes a given scan id, so
updates are plain read-modify-write.

Guarantees enforced here:
    - terminal states (completed, failed) are absorbing;
    - processed counters and progress_pct never decrease.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from codeauditor.core.models import CompiledResults, ScanState, ScanType
from codeauditor.tracking.history_store import BaseHistoryStore
from codeauditor.tracking.progress_cache import BaseProgressCache

logger = logging.getLogger(__name__)

_MONOTONE_FIELDS = ("progress_pct", "processed_items", "processed_batches")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StateTracker:
    """Read/merge/write ScanState records for scans owned by this process.

    Args:
        cache: Ephemeral progress cache.
        history: Durable history store, or None to skip durable writes.
        key_prefix: Cache key namespace (``<prefix>:<scan_id>``).
        ttl_s: Progress record TTL.
        results_ttl_s: Compiled results TTL.
    """

    def __init__(
        self,
        cache: BaseProgressCache,
        history: BaseHistoryStore | None = None,
        key_prefix: str = "codeauditor:scan",
        ttl_s: int = 7200,
        results_ttl_s: int = 3600,
    ) -> None:
        self._cache = cache
        self._history = history
        self._prefix = key_prefix
        self._ttl_s = ttl_s
        self._results_ttl_s = results_ttl_s
        self._mirror: dict[str, ScanState] = {}

    # --- Keys ---

    def state_key(self, scan_id: str) -> str:
        return f"{self._prefix}:{scan_id}"

    def results_key(self, scan_id: str) -> str:
        return f"{self._prefix}:{scan_id}:results"

    def stop_key(self, scan_id: str) -> str:
        return f"{self._prefix}:{scan_id}:stop"

    # --- Lifecycle ---

    async def start(self, scan_id: str, scan_type: ScanType) -> ScanState:
        """Create the queued record for a new scan."""
        state = ScanState(
            scan_id=scan_id,
            scan_type=scan_type,
            status="queued",
            message="Scan queued",
            started_at=_now(),
        )
        self._mirror[scan_id] = state
        await self._write(state)
        await self._history_create(state)
        return state

    async def update(self, scan_id: str, **fields: Any) -> ScanState:
        """Merge fields into the current record and write it back."""
        current = await self._current(scan_id)
        if current.is_terminal:
            logger.debug("Ignoring update for terminal scan %s: %s", scan_id, sorted(fields))
            return current

        merged = current.model_dump()
        merged.update(fields)
        for name in _MONOTONE_FIELDS:
            merged[name] = max(getattr(current, name), merged[name])
        state = ScanState.model_validate(merged)

        self._mirror[scan_id] = state
        await self._write(state)
        if state.status != current.status:
            await self._history_update(state)
        return state

    async def complete(self, scan_id: str, **fields: Any) -> ScanState:
        fields.setdefault("message", "Scan completed")
        return await self.update(
            scan_id, status="completed", progress_pct=100, completed_at=_now(), **fields
        )

    async def fail(self, scan_id: str, error: str, **fields: Any) -> ScanState:
        fields.setdefault("message", "Scan failed")
        return await self.update(
            scan_id, status="failed", error=error, failed_at=_now(), **fields
        )

    # --- Reads ---

    async def get(self, scan_id: str) -> ScanState | None:
        """Current state: progress cache first, then durable history."""
        data = await self._cache.get(self.state_key(scan_id))
        if data is not None:
            return ScanState.model_validate(data)
        if self._history is not None:
            record = await self._history.find_by_scan_id(scan_id)
            if record is not None:
                return ScanState.model_validate(record)
        return None

    # --- Results & cancellation ---

    async def store_results(self, scan_id: str, results: CompiledResults) -> None:
        await self._cache.put(
            self.results_key(scan_id), results.model_dump(mode="json"), self._results_ttl_s
        )

    async def get_results(self, scan_id: str) -> CompiledResults | None:
        data = await self._cache.get(self.results_key(scan_id))
        return CompiledResults.model_validate(data) if data is not None else None

    async def request_stop(self, scan_id: str) -> None:
        """Ask a running scan to stop before its next batch."""
        await self._cache.put(self.stop_key(scan_id), {"stop": True}, self._ttl_s)

    async def is_stop_requested(self, scan_id: str) -> bool:
        flag = await self._cache.get(self.stop_key(scan_id))
        return bool(flag and flag.get("stop"))

    # --- Internal helpers ---

    async def _current(self, scan_id: str) -> ScanState:
        data = await self._cache.get(self.state_key(scan_id))
        if data is not None:
            return ScanState.model_validate(data)
        if scan_id in self._mirror:
            # Cache entry evicted mid-scan; the local copy is authoritative
            return self._mirror[scan_id]
        raise KeyError(f"Unknown scan id: {scan_id}")

    async def _write(self, state: ScanState) -> None:
        await self._cache.put(
            self.state_key(state.scan_id), state.model_dump(mode="json"), self._ttl_s
        )

    async def _history_create(self, state: ScanState) -> None:
        if self._history is None:
            return
        try:
            await self._history.create(state.model_dump(mode="json"))
        except Exception as e:
            logger.warning("History create failed for %s: %s", state.scan_id, e)

    async def _history_update(self, state: ScanState) -> None:
        if self._history is None:
            return
        try:
            await self._history.update(state.scan_id, state.model_dump(mode="json"))
        except Exception as e:
            logger.warning("History update failed for %s: %s", state.scan_id, e)
