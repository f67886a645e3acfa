# src/introspection/base_introspector.py — v1
"""Abstract schema introspector interface (database scans)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseIntrospector(ABC):
    """Read-only view over a database schema and its rows."""

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Table names in introspection order."""

    @abstractmethod
    def get_schema(self, table: str) -> dict[str, Any]:
        """Structured schema for one table.

        Shape: ``{"name", "columns": {col: {...}}, "indexes": [...],
        "indexed_columns": [...], "foreign_keys": [...]}``.
        """

    @abstractmethod
    def sample_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        """Up to ``limit`` rows of the table as column -> value dicts."""

    def close(self) -> None:
        """Release the underlying connection (no-op by default)."""
