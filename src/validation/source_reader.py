# src/validation/source_reader.py — v1
"""Source reader interface and local filesystem implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BaseSourceReader(ABC):
    """Read access to the scanned sources, keyed by work item id."""

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """Raw file content. Raises OSError if unreadable."""

    @abstractmethod
    def file_size(self, path: str) -> int:
        """File size in bytes. Raises OSError if missing."""

    def read_text(self, path: str) -> str:
        return self.read_file(path).decode("utf-8", errors="replace")


class LocalSourceReader(BaseSourceReader):
    """Reads files relative to a root directory (absolute paths pass through)."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    def _resolve(self, path: str) -> Path:
        candidate = Path(path.replace("\\", "/"))
        return candidate if candidate.is_absolute() else self._root / candidate

    def read_file(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def file_size(self, path: str) -> int:
        return self._resolve(path).stat().st_size
