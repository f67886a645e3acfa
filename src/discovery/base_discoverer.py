# src/discovery/base_discoverer.py — v1
"""Abstract work discoverer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from codeauditor.core.models import ScanMode, WorkItem


class BaseDiscoverer(ABC):
    """Enumerates candidate work items for one scan."""

    @abstractmethod
    def discover(
        self, mode: ScanMode = "full", selection: Sequence[str] | None = None
    ) -> list[WorkItem]:
        """Return work items in deterministic processing order.

        Args:
            mode: "full" enumerates everything, "selective" resolves
                each selection entry independently.
            selection: Paths or table names for selective mode.

        Raises:
            DiscoveryError: If the root or connection is unreachable.
        """

    @property
    @abstractmethod
    def discoverer_name(self) -> str:
        """Short identifier used in logs (files, tables)."""
