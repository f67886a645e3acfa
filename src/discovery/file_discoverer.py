# src/discovery/file_discoverer.py — v1
"""Source file discovery for code scans.

Walks the application root (default ``<project>/app``), keeps files with a
scanned extension, drops excluded segments (vendor, cache, tests) and test
files, and enforces a hard per-file size cap. Selective mode resolves each
entry on its own; bad entries are logged and skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from codeauditor.core.errors import DiscoveryError
from codeauditor.core.models import ScanMode, WorkItem
from codeauditor.discovery.base_discoverer import BaseDiscoverer

logger = logging.getLogger(__name__)


class FileDiscoverer(BaseDiscoverer):
    """Discover source files under a root directory."""

    def __init__(
        self,
        root: str | Path,
        extensions: Iterable[str] = (".php",),
        exclude_segments: Iterable[str] = ("vendor", "cache", "tests"),
        exclude_suffixes: Iterable[str] = ("Test.php",),
        max_item_bytes: int = 50_000,
    ) -> None:
        self._root = Path(root).expanduser()
        self._extensions = {e.lower() for e in extensions}
        self._exclude_segments = {s.lower() for s in exclude_segments}
        self._exclude_suffixes = tuple(exclude_suffixes)
        self._max_item_bytes = max_item_bytes

    @property
    def discoverer_name(self) -> str:
        return "files"

    @property
    def root(self) -> Path:
        return self._root

    def discover(
        self, mode: ScanMode = "full", selection: Sequence[str] | None = None
    ) -> list[WorkItem]:
        if not self._root.is_dir():
            raise DiscoveryError(f"Scan root not found or not a directory: {self._root}")

        root = self._root.resolve()
        if mode == "selective" and selection:
            candidates: list[Path] = []
            for entry in selection:
                candidates.extend(self._resolve_entry(root, entry))
        else:
            if mode == "selective":
                logger.info("Selective scan without selection, scanning full root")
            candidates = sorted(self._walk(root))

        items: list[WorkItem] = []
        seen: set[Path] = set()
        for path in candidates:
            if path in seen:
                continue
            seen.add(path)
            item = self._to_item(root, path)
            if item is not None:
                items.append(item)

        logger.info(
            "Discovered %d files under %s (mode=%s)", len(items), self._root, mode
        )
        return items

    # --- Internal helpers ---

    def _resolve_entry(self, root: Path, entry: str) -> list[Path]:
        normalized = entry.strip().replace("\\", "/")
        if normalized.startswith("app/"):
            normalized = normalized[len("app/"):]
        if not normalized:
            logger.warning("Skipping empty selection entry")
            return []

        candidate = Path(normalized)
        if not candidate.is_absolute():
            candidate = root / candidate
        try:
            resolved = candidate.resolve()
        except OSError as e:
            logger.warning("Skipping unresolvable selection %r: %s", entry, e)
            return []

        if not resolved.is_relative_to(root):
            logger.warning("Skipping selection outside scan root: %s", entry)
            return []
        if resolved.is_dir():
            return sorted(self._walk(resolved))
        if resolved.is_file():
            return [resolved]
        logger.warning("Skipping missing selection: %s", entry)
        return []

    def _walk(self, directory: Path) -> Iterable[Path]:
        for path in directory.rglob("*"):
            if path.is_file() and path.suffix.lower() in self._extensions:
                yield path

    def _is_excluded(self, root: Path, path: Path) -> bool:
        rel_parts = path.relative_to(root).parts
        if any(part.lower() in self._exclude_segments for part in rel_parts[:-1]):
            return True
        return path.name.endswith(self._exclude_suffixes)

    def _to_item(self, root: Path, path: Path) -> WorkItem | None:
        if path.suffix.lower() not in self._extensions:
            logger.debug("Skipping non-source file: %s", path)
            return None
        if self._is_excluded(root, path):
            logger.debug("Skipping excluded file: %s", path)
            return None
        try:
            size = path.stat().st_size
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", path, e)
            return None
        if size > self._max_item_bytes:
            logger.warning(
                "Skipping %s: %d bytes exceeds cap of %d", path, size, self._max_item_bytes
            )
            return None
        return WorkItem(
            id=path.relative_to(root).as_posix(),
            size_bytes=size,
            path=str(path),
        )
