# src/discovery/table_discoverer.py — v1
"""Table discovery for database scans (schema and data variants)."""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Sequence

from codeauditor.core.errors import DiscoveryError
from codeauditor.core.models import ScanMode, WorkItem
from codeauditor.discovery.base_discoverer import BaseDiscoverer
from codeauditor.introspection.base_introspector import BaseIntrospector

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"
_SENSITIVE_MARKERS = ("password", "token", "secret", "key")


def redact_row(row: dict[str, Any]) -> dict[str, Any]:
    """Mask values of columns whose name looks sensitive."""
    return {
        col: REDACTED if any(m in col.lower() for m in _SENSITIVE_MARKERS) else value
        for col, value in row.items()
    }


def payload_size(payload: Any) -> int:
    """Byte size of a payload once JSON-encoded (what the backend receives)."""
    return len(json.dumps(payload, default=str).encode("utf-8"))


class TableDiscoverer(BaseDiscoverer):
    """Discover tables through a schema introspector.

    ``schema`` scans attach the table schema as payload, ``data`` scans
    attach redacted sample rows.
    """

    def __init__(
        self,
        introspector: BaseIntrospector,
        scan_type: Literal["schema", "data"] = "schema",
        sample_size: int = 100,
        max_item_bytes: int = 50_000,
    ) -> None:
        if scan_type not in ("schema", "data"):
            raise ValueError(f"TableDiscoverer does not handle scan type {scan_type!r}")
        self._introspector = introspector
        self._scan_type = scan_type
        self._sample_size = sample_size
        self._max_item_bytes = max_item_bytes

    @property
    def discoverer_name(self) -> str:
        return "tables"

    def discover(
        self, mode: ScanMode = "full", selection: Sequence[str] | None = None
    ) -> list[WorkItem]:
        try:
            tables = self._introspector.list_tables()
        except DiscoveryError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Schema introspector unreachable: {e}") from e

        if mode == "selective" and selection:
            wanted = set(selection)
            missing = wanted.difference(tables)
            for name in sorted(missing):
                logger.warning("Skipping unknown table: %s", name)
            tables = [t for t in tables if t in wanted]

        items: list[WorkItem] = []
        for table in tables:
            try:
                payload = self._build_payload(table)
            except Exception as e:
                logger.warning("Skipping table %s: introspection failed: %s", table, e)
                continue
            if payload is None:
                logger.debug("Skipping table %s: nothing to analyze", table)
                continue
            size = payload_size(payload)
            if size > self._max_item_bytes:
                logger.warning(
                    "Skipping table %s: payload %d bytes exceeds cap of %d",
                    table, size, self._max_item_bytes,
                )
                continue
            items.append(WorkItem(id=table, size_bytes=size, payload=payload))

        logger.info(
            "Discovered %d tables for %s scan (mode=%s)", len(items), self._scan_type, mode
        )
        return items

    def _build_payload(self, table: str) -> dict[str, Any] | None:
        if self._scan_type == "schema":
            schema = self._introspector.get_schema(table)
            return schema or None
        rows = self._introspector.sample_rows(table, self._sample_size)
        if not rows:
            return None
        return {"name": table, "data": [redact_row(r) for r in rows]}
