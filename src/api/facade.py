# src/api/facade.py — v2
"""Public API facade — single entry point for code and database scans.

Usage:
    from codeauditor.api.facade import run_code_scan
    report = await run_code_scan(ScanOptions(mode="selective", selection=["Models/User.php"]))

Collaborators (backend, progress cache, history, issue store) are built
from Settings unless passed in explicitly.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Literal

from codeauditor.analyzer.backend_factory import create_backend
from codeauditor.analyzer.base_backend import BaseAnalysisBackend
from codeauditor.analyzer.client import AnalyzerClient
from codeauditor.api.models import ScanOptions, ScanReport
from codeauditor.config.settings import Settings
from codeauditor.core.models import CompiledResults, ScanState
from codeauditor.discovery.file_discoverer import FileDiscoverer
from codeauditor.discovery.table_discoverer import TableDiscoverer
from codeauditor.introspection.base_introspector import BaseIntrospector
from codeauditor.introspection.sqlite_introspector import SqliteIntrospector
from codeauditor.pipeline.profiles import CodeScanProfile, DatabaseScanProfile, ScanProfile
from codeauditor.pipeline.retry import RetryPolicy
from codeauditor.pipeline.runner import ScanRunner
from codeauditor.storage.issue_store import BaseIssueStore, JsonlIssueStore
from codeauditor.tracking.cache_factory import create_history_store, create_progress_cache
from codeauditor.tracking.state_tracker import StateTracker
from codeauditor.validation.schema_validator import SchemaValidator
from codeauditor.validation.source_reader import LocalSourceReader

logger = logging.getLogger(__name__)


async def run_code_scan(
    options: ScanOptions | None = None,
    settings: Settings | None = None,
    backend: BaseAnalysisBackend | None = None,
    tracker: StateTracker | None = None,
    issue_store: BaseIssueStore | None = None,
) -> ScanReport:
    """Scan the project's PHP sources and return the final report.

    Args:
        options: Scan id, mode and selection. Full scan with a fresh id if None.
        settings: Global settings. Loaded from .env if None.
        backend: Analysis backend. Built from settings if None.
        tracker: State tracker. Built from settings if None.
        issue_store: Issue sink. JSON Lines file at ``issues_path`` if None.
    """
    settings = settings or Settings()
    scan_root = settings.project_root.expanduser() / settings.scan_root
    discoverer = FileDiscoverer(
        root=scan_root,
        extensions=settings.scan_extensions_list,
        exclude_segments=settings.scan_exclude_segments_list,
        exclude_suffixes=settings.scan_exclude_suffixes_list,
        max_item_bytes=settings.max_item_bytes,
    )
    profile = CodeScanProfile(discoverer, LocalSourceReader(scan_root))
    return await _run(profile, options, settings, backend, tracker, issue_store)


async def run_database_scan(
    scan_type: Literal["schema", "data"] = "schema",
    options: ScanOptions | None = None,
    settings: Settings | None = None,
    introspector: BaseIntrospector | None = None,
    backend: BaseAnalysisBackend | None = None,
    tracker: StateTracker | None = None,
    issue_store: BaseIssueStore | None = None,
) -> ScanReport:
    """Scan database tables (schema or sampled data) and return the final report."""
    settings = settings or Settings()
    owns_introspector = introspector is None
    if introspector is None:
        introspector = SqliteIntrospector(settings.project_root.expanduser() / settings.database_path)
    discoverer = TableDiscoverer(
        introspector,
        scan_type=scan_type,
        sample_size=settings.data_sample_size,
        max_item_bytes=settings.max_item_bytes,
    )
    profile = DatabaseScanProfile(discoverer, SchemaValidator(introspector), scan_type)
    try:
        return await _run(profile, options, settings, backend, tracker, issue_store)
    finally:
        if owns_introspector:
            introspector.close()


async def get_scan_state(
    scan_id: str,
    settings: Settings | None = None,
    tracker: StateTracker | None = None,
) -> ScanState | None:
    """Current progress record of a scan, or None if unknown."""
    tracker = tracker or build_tracker(settings or Settings())
    return await tracker.get(scan_id)


async def get_scan_results(
    scan_id: str,
    settings: Settings | None = None,
    tracker: StateTracker | None = None,
) -> CompiledResults | None:
    """Compiled results of a scan while they are still cached."""
    tracker = tracker or build_tracker(settings or Settings())
    return await tracker.get_results(scan_id)


async def request_stop(
    scan_id: str,
    settings: Settings | None = None,
    tracker: StateTracker | None = None,
) -> None:
    """Ask a running scan to stop before its next batch."""
    tracker = tracker or build_tracker(settings or Settings())
    await tracker.request_stop(scan_id)
    logger.info("Stop requested for scan %s", scan_id)


def build_tracker(settings: Settings) -> StateTracker:
    """State tracker over the configured progress cache and history store."""
    return StateTracker(
        cache=create_progress_cache(settings),
        history=create_history_store(settings),
        key_prefix=settings.progress_key_prefix,
        ttl_s=settings.progress_ttl_s,
        results_ttl_s=settings.results_ttl_s,
    )


async def _run(
    profile: ScanProfile,
    options: ScanOptions | None,
    settings: Settings,
    backend: BaseAnalysisBackend | None,
    tracker: StateTracker | None,
    issue_store: BaseIssueStore | None,
) -> ScanReport:
    options = options or ScanOptions()
    scan_id = options.scan_id or _generate_scan_id(profile.scan_type)

    runner = ScanRunner(
        profile=profile,
        client=AnalyzerClient(backend or create_backend(settings)),
        tracker=tracker or build_tracker(settings),
        limits=settings.batch_limits(profile.scan_type),
        issue_store=issue_store or JsonlIssueStore(settings.issues_path),
        retry=RetryPolicy(
            max_retries=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
            backoff_factor=settings.retry_backoff_factor,
        ),
        inter_batch_delay_s=settings.inter_batch_delay_s,
    )

    logger.info(
        "Starting %s scan: scan_id=%s, mode=%s, selection=%d",
        profile.scan_type, scan_id, options.mode, len(options.selection),
    )
    result = await runner.run(scan_id, options.mode, options.selection or None)

    return ScanReport(
        scan_id=scan_id,
        state=result.state,
        results=result.results,
        analyze_calls=result.analyze_calls,
        splits=result.splits,
        duration_ms=result.duration_ms,
    )


def _generate_scan_id(scan_type: str) -> str:
    """Generate a scan ID: {type}_yyyymmdd_hhmmss_{uuid4_short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{scan_type}_{ts}_{uuid.uuid4().hex[:8]}"
