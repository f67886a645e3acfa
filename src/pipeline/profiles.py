# src/pipeline/profiles.py — v1
"""Scan profiles: everything that differs between code and database scans.

A profile owns discovery, request building and turning analysis text into
validated issues. The runner only sees this interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Literal, Sequence

from codeauditor.analyzer.models import AnalysisRequest
from codeauditor.analyzer.request_builder import (
    build_code_request,
    build_data_request,
    build_schema_request,
)
from codeauditor.core.models import Batch, Issue, ScanMode, ScanType, WorkItem
from codeauditor.discovery.base_discoverer import BaseDiscoverer
from codeauditor.parsing.issue_parser import parse_issues
from codeauditor.validation.line_resolver import LineResolver
from codeauditor.validation.normalizer import IssueNormalizer
from codeauditor.validation.schema_validator import SchemaValidator
from codeauditor.validation.source_reader import BaseSourceReader

logger = logging.getLogger(__name__)


class ScanProfile(ABC):
    """Scan-type specific behavior plugged into the runner."""

    def __init__(self, discoverer: BaseDiscoverer) -> None:
        self._discoverer = discoverer

    @property
    @abstractmethod
    def scan_type(self) -> ScanType:
        """code, schema or data."""

    def discover(self, mode: ScanMode, selection: Sequence[str] | None) -> list[WorkItem]:
        return self._discoverer.discover(mode, selection)

    @abstractmethod
    def build_request(self, batch: Batch) -> AnalysisRequest:
        """Instruction text and payload for one batch."""

    @abstractmethod
    def extract_issues(self, analysis: str, batch: Batch) -> list[Issue]:
        """Parse, filter and normalize a batch's analysis text.

        Raises:
            ParseError: When the analysis text is discarded.
        """


class CodeScanProfile(ScanProfile):
    """PHP source scans: files are read, numbered and lines validated."""

    def __init__(self, discoverer: BaseDiscoverer, reader: BaseSourceReader) -> None:
        super().__init__(discoverer)
        self._reader = reader
        self._resolver = LineResolver(reader)
        self._normalizer = IssueNormalizer(self._resolver)

    @property
    def scan_type(self) -> ScanType:
        return "code"

    def build_request(self, batch: Batch) -> AnalysisRequest:
        contents: dict[str, str] = {}
        for item in batch.items:
            try:
                contents[item.id] = self._reader.read_text(item.id)
            except OSError as e:
                logger.warning("Cannot read %s, leaving it out of the request: %s", item.id, e)
        return build_code_request(batch, contents)

    def extract_issues(self, analysis: str, batch: Batch) -> list[Issue]:
        raws = parse_issues(analysis, batch.ids, "code")
        issues = self._normalizer.normalize_all(raws, batch.ids[0])
        self._resolver.clear()
        return issues


class DatabaseScanProfile(ScanProfile):
    """Schema or data scans over introspected tables."""

    def __init__(
        self,
        discoverer: BaseDiscoverer,
        validator: SchemaValidator,
        scan_type: Literal["schema", "data"] = "schema",
    ) -> None:
        super().__init__(discoverer)
        self._validator = validator
        self._scan_type = scan_type
        self._normalizer = IssueNormalizer()

    @property
    def scan_type(self) -> ScanType:
        return self._scan_type

    def build_request(self, batch: Batch) -> AnalysisRequest:
        if self._scan_type == "schema":
            return build_schema_request(batch)
        return build_data_request(batch)

    def extract_issues(self, analysis: str, batch: Batch) -> list[Issue]:
        raws = parse_issues(analysis, batch.ids, self._scan_type)
        kept = self._validator.filter_false_positives(raws, batch.ids[0])
        for raw in kept:
            raw.setdefault("issue_type", self._scan_type)
        return self._normalizer.normalize_all(kept, batch.ids[0])
