# src/introspection/sqlite_introspector.py — v1
"""SQLite schema introspector using stdlib sqlite3.

Reports columns, indexes, the flattened set of indexed columns and foreign
keys so the schema false-positive filter can tell whether a "missing index"
claim is real.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from codeauditor.core.errors import DiscoveryError
from codeauditor.introspection.base_introspector import BaseIntrospector

logger = logging.getLogger(__name__)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class SqliteIntrospector(BaseIntrospector):
    """Introspector over a single SQLite database file."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            if not self._db_path.is_file():
                raise DiscoveryError(f"Database not found: {self._db_path}")
            try:
                self._conn = sqlite3.connect(str(self._db_path))
            except sqlite3.Error as e:
                raise DiscoveryError(f"Cannot open database {self._db_path}: {e}") from e
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def list_tables(self) -> list[str]:
        try:
            rows = self._get_conn().execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' "
                "AND name NOT LIKE 'sqlite_%' ORDER BY name"
            ).fetchall()
        except sqlite3.Error as e:
            raise DiscoveryError(f"Cannot list tables: {e}") from e
        return [r["name"] for r in rows]

    def get_schema(self, table: str) -> dict[str, Any]:
        conn = self._get_conn()
        columns: dict[str, dict[str, Any]] = {}
        for row in conn.execute(f"PRAGMA table_info({_quote(table)})"):
            columns[row["name"]] = {
                "type": row["type"],
                "nullable": not row["notnull"],
                "default": row["dflt_value"],
                "primary_key": bool(row["pk"]),
                "has_index": bool(row["pk"]),
            }
        if not columns:
            return {}

        indexes: list[dict[str, Any]] = []
        indexed: list[str] = []
        for idx in conn.execute(f"PRAGMA index_list({_quote(table)})").fetchall():
            cols = [
                c["name"]
                for c in conn.execute(f"PRAGMA index_info({_quote(idx['name'])})")
                if c["name"] is not None
            ]
            indexes.append({"name": idx["name"], "columns": cols, "unique": bool(idx["unique"])})
            for col in cols:
                if col not in indexed:
                    indexed.append(col)
                if col in columns:
                    columns[col]["has_index"] = True

        foreign_keys = [
            {"column": fk["from"], "references": fk["table"], "on": fk["to"]}
            for fk in conn.execute(f"PRAGMA foreign_key_list({_quote(table)})")
        ]

        return {
            "name": table,
            "columns": columns,
            "indexes": indexes,
            "indexed_columns": indexed,
            "foreign_keys": foreign_keys,
        }

    def sample_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        cursor = self._get_conn().execute(
            f"SELECT * FROM {_quote(table)} LIMIT ?", (limit,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
