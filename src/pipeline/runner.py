# src/pipeline/runner.py — v3
"""Scan runner — drive one scan from discovery to compiled results.

State machine: queued → discovering → scanning → completed | failed.
Terminal states are absorbing.

Per batch, the backend outcome decides what happens next:
  - success: parse, normalize and validate issues, advance progress;
  - rate limit / quota: fail the scan immediately, nothing more is sent;
  - too large: replace the batch by its two halves at the front of the
    worklist; a single item that is still too large is a soft failure;
  - anything else: retry with backoff, then record a soft failure.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Sequence

from codeauditor.analyzer.client import AnalyzerClient
from codeauditor.batch.packer import pack
from codeauditor.config.settings import BatchLimits
from codeauditor.core.errors import (
    DiscoveryError,
    ParseError,
    RateLimitError,
    SizeError,
    TransientError,
)
from codeauditor.core.models import (
    Batch,
    BatchOutcome,
    CompiledResults,
    ItemFailure,
    ScanMode,
    ScanState,
)
from codeauditor.logging.context import batch_context, set_scan_context
from codeauditor.pipeline.profiles import ScanProfile
from codeauditor.pipeline.retry import RetryPolicy, Sleep, call_with_retry
from codeauditor.results.compiler import compile_results
from codeauditor.storage.issue_store import BaseIssueStore
from codeauditor.tracking.state_tracker import StateTracker

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "RATE_LIMIT_EXCEEDED: "


@dataclass
class ScanResult:
    """Outcome of one runner invocation."""

    state: ScanState
    results: CompiledResults | None = None
    analyze_calls: int = 0
    splits: int = 0
    duration_ms: int = 0


@dataclass
class _Progress:
    total_batches: int
    pieces_left: dict[int, int] = field(default_factory=dict)
    processed_batches: int = 0
    processed_items: int = 0


class ScanCancelled(Exception):
    """Stop flag observed between batches."""


class ScanRunner:
    """Run a scan for one profile.

    Args:
        profile: Code or database scan profile.
        client: Analyzer client bound to a backend.
        tracker: State tracker (progress cache + history).
        limits: Batch budget for this scan type.
        issue_store: Durable sink for compiled issues (optional).
        retry: Transient retry policy.
        inter_batch_delay_s: Pause between backend calls.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        profile: ScanProfile,
        client: AnalyzerClient,
        tracker: StateTracker,
        limits: BatchLimits,
        issue_store: BaseIssueStore | None = None,
        retry: RetryPolicy | None = None,
        inter_batch_delay_s: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._profile = profile
        self._client = client
        self._tracker = tracker
        self._limits = limits
        self._issue_store = issue_store
        self._retry = retry or RetryPolicy()
        self._inter_batch_delay_s = inter_batch_delay_s
        self._sleep = sleep

    async def run(
        self,
        scan_id: str,
        mode: ScanMode = "full",
        selection: Sequence[str] | None = None,
    ) -> ScanResult:
        """Execute the scan and return its final state."""
        start_ns = time.monotonic_ns()
        set_scan_context(scan_id, self._profile.scan_type)

        existing = await self._tracker.get(scan_id)
        if existing is not None and existing.is_terminal:
            logger.info("Scan %s already %s, not running again", scan_id, existing.status)
            return ScanResult(state=existing)
        if existing is None:
            await self._tracker.start(scan_id, self._profile.scan_type)

        result = ScanResult(state=await self._current(scan_id))
        outcomes: list[BatchOutcome] = []
        try:
            result.state = await self._execute(scan_id, mode, selection, outcomes, result)
        except DiscoveryError as e:
            logger.error("Discovery failed: %s", e)
            result.state = await self._tracker.fail(scan_id, str(e), message="Discovery failed")
        except RateLimitError as e:
            error = str(e)
            if error.startswith(RATE_LIMIT_PREFIX):
                error = error[len(RATE_LIMIT_PREFIX):]
            logger.error("Aborting scan on %s: %s", e.code, error)
            partial = await self._save_partial(scan_id, outcomes, result)
            result.state = await self._tracker.fail(
                scan_id, error, rate_limit_exceeded=True, message="Rate limit exceeded", **partial,
            )
        except ScanCancelled:
            logger.warning("Scan %s cancelled", scan_id)
            partial = await self._save_partial(scan_id, outcomes, result)
            result.state = await self._tracker.fail(
                scan_id, "Scan cancelled", message="Scan cancelled", **partial,
            )
        except Exception as e:
            logger.exception("Scan %s failed unexpectedly", scan_id)
            result.state = await self._tracker.fail(scan_id, str(e) or type(e).__name__)

        result.duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        logger.info(
            "Scan %s %s: %d calls, %d splits, %dms",
            scan_id, result.state.status, result.analyze_calls, result.splits, result.duration_ms,
        )
        return result

    # --- Stages ---

    async def _execute(
        self,
        scan_id: str,
        mode: ScanMode,
        selection: Sequence[str] | None,
        outcomes: list[BatchOutcome],
        result: ScanResult,
    ) -> ScanState:
        await self._tracker.update(scan_id, status="discovering", message="Discovering items...")
        items = self._profile.discover(mode, selection)

        if not items:
            logger.info("Nothing to scan")
            result.results = await self._finalize(scan_id, outcomes)
            return await self._tracker.complete(
                scan_id, message="No items to scan", total_issues_found=0, issues_saved=0,
            )

        batches = pack(
            items, self._limits.max_count, self._limits.max_bytes, self._limits.max_tokens
        )
        await self._tracker.update(
            scan_id,
            status="scanning",
            total_items=len(items),
            total_batches=len(batches),
            message=f"Scanning {len(items)} items in {len(batches)} batches",
        )

        await self._process(scan_id, batches, outcomes, result)

        await self._tracker.update(scan_id, message="Compiling results...")
        compiled = await self._finalize(scan_id, outcomes)
        result.results = compiled
        saved = await self._persist(scan_id, compiled)
        return await self._tracker.complete(
            scan_id,
            total_issues_found=compiled.summary.total_issues,
            issues_saved=saved,
            message=f"Scan completed: {compiled.summary.total_issues} issues found",
        )

    async def _process(
        self,
        scan_id: str,
        batches: list[Batch],
        outcomes: list[BatchOutcome],
        result: ScanResult,
    ) -> None:
        progress = _Progress(
            total_batches=len(batches),
            pieces_left={b.index: 1 for b in batches},
        )
        sizes = {b.index: len(b) for b in batches}
        failures: list[ItemFailure] = []
        worklist: deque[Batch] = deque(batches)
        first = True

        while worklist:
            if await self._tracker.is_stop_requested(scan_id):
                raise ScanCancelled(scan_id)
            if not first and self._inter_batch_delay_s > 0:
                await self._sleep(self._inter_batch_delay_s)
            first = False

            batch = worklist.popleft()
            label = f"{batch.index + 1}/{progress.total_batches}"
            with batch_context(label):
                await self._tracker.update(scan_id, message=f"Analyzing batch {label}...")
                try:
                    analysis = await self._analyze(scan_id, batch, result)
                except SizeError as e:
                    if len(batch) > 1:
                        first_half, second_half = batch.split()
                        worklist.appendleft(second_half)
                        worklist.appendleft(first_half)
                        progress.pieces_left[batch.index] += 1
                        result.splits += 1
                        logger.info(
                            "Batch too large, split %d items into %d + %d",
                            len(batch), len(first_half), len(second_half),
                        )
                        await self._tracker.update(scan_id, message="Batch too large, splitting...")
                        continue
                    outcomes.append(self._failed(batch, f"Payload too large: {e}", failures))
                except TransientError as e:
                    outcomes.append(self._failed(batch, str(e), failures))
                else:
                    outcomes.append(self._succeeded(batch, analysis))

            progress.pieces_left[batch.index] -= 1
            if progress.pieces_left[batch.index] == 0:
                progress.processed_batches += 1
                progress.processed_items += sizes[batch.index]
            await self._tracker.update(
                scan_id,
                processed_batches=progress.processed_batches,
                processed_items=progress.processed_items,
                progress_pct=int(progress.processed_batches / progress.total_batches * 100),
                failed_items=list(failures),
            )

    async def _analyze(self, scan_id: str, batch: Batch, result: ScanResult) -> str:
        request = self._profile.build_request(batch)

        async def call():
            result.analyze_calls += 1
            return await self._client.analyze(request)

        async def on_retry(attempt: int, _error: object) -> None:
            await self._tracker.update(
                scan_id, message=f"Handling error, retrying ({attempt}/{self._retry.max_retries})..."
            )

        return await call_with_retry(call, self._retry, self._sleep, on_retry)

    def _succeeded(self, batch: Batch, analysis: str) -> BatchOutcome:
        try:
            issues = self._profile.extract_issues(analysis, batch)
        except ParseError as e:
            logger.warning("Discarding analysis for %s: %s", batch.ids, e)
            issues = []
        logger.info("Batch of %d items yielded %d issues", len(batch), len(issues))
        return BatchOutcome(subjects=batch.ids, issues=issues)

    @staticmethod
    def _failed(batch: Batch, reason: str, failures: list[ItemFailure]) -> BatchOutcome:
        logger.warning("Recording analysis failure for %s: %s", batch.ids, reason)
        failures.extend(ItemFailure(subject=i, reason=reason) for i in batch.ids)
        return BatchOutcome(subjects=batch.ids, failed=True, error=reason)

    async def _finalize(self, scan_id: str, outcomes: list[BatchOutcome]) -> CompiledResults:
        compiled = compile_results(outcomes)
        await self._tracker.store_results(scan_id, compiled)
        return compiled

    async def _save_partial(
        self, scan_id: str, outcomes: list[BatchOutcome], result: ScanResult
    ) -> dict[str, int]:
        """Compile and persist what finished before an abort."""
        compiled = await self._finalize(scan_id, outcomes)
        result.results = compiled
        saved = await self._persist(scan_id, compiled)
        return {"total_issues_found": compiled.summary.total_issues, "issues_saved": saved}

    async def _persist(self, scan_id: str, compiled: CompiledResults) -> int:
        if self._issue_store is None:
            return 0
        saved = 0
        for issue in compiled.issues:
            try:
                await self._issue_store.create(issue, scan_id)
                saved += 1
            except Exception as e:
                logger.warning("Failed to save issue for %s: %s", issue.subject, e)
        return saved

    async def _current(self, scan_id: str) -> ScanState:
        state = await self._tracker.get(scan_id)
        if state is None:
            raise KeyError(f"Unknown scan id: {scan_id}")
        return state
