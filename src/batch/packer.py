# src/batch/packer.py — v1
"""Greedy constraint-aware batch packing.

Items are packed in input order under three simultaneous budgets
(item count, byte total, token estimate). A single item that violates a
budget on its own still gets its own one-item batch so packing always
makes progress; the runner deals with it if the backend rejects it.
"""

from __future__ import annotations

import logging
from typing import Iterable

from codeauditor.core.models import Batch, WorkItem

logger = logging.getLogger(__name__)


def _fits(batch: Batch, item: WorkItem, max_count: int, max_bytes: int, max_tokens: int) -> bool:
    return (
        len(batch) + 1 <= max_count
        and batch.byte_total + item.size_bytes <= max_bytes
        and batch.token_total + item.token_estimate <= max_tokens
    )


def pack(
    items: Iterable[WorkItem],
    max_count: int,
    max_bytes: int,
    max_tokens: int,
) -> list[Batch]:
    """Partition items into ordered batches.

    Args:
        items: Work items in processing order.
        max_count: Maximum number of items per batch.
        max_bytes: Maximum summed ``size_bytes`` per batch.
        max_tokens: Maximum summed ``token_estimate`` per batch.

    Returns:
        Batches whose concatenated items equal the input exactly.
    """
    if max_count < 1 or max_bytes < 1 or max_tokens < 1:
        raise ValueError("batch limits must be >= 1")

    batches: list[Batch] = []
    current = Batch(index=0)

    for item in items:
        if len(current) and not _fits(current, item, max_count, max_bytes, max_tokens):
            batches.append(current)
            current = Batch(index=len(batches))
        current.items.append(item)
        if len(current) == 1 and (
            item.size_bytes > max_bytes or item.token_estimate > max_tokens
        ):
            logger.debug(
                "Item %s exceeds batch budget on its own (%d bytes, ~%d tokens)",
                item.id, item.size_bytes, item.token_estimate,
            )

    if len(current):
        batches.append(current)

    logger.info(
        "Packed %d items into %d batches (max_count=%d, max_bytes=%d, max_tokens=%d)",
        sum(len(b) for b in batches), len(batches), max_count, max_bytes, max_tokens,
    )
    return batches
