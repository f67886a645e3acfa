# src/tracking/cache_factory.py — v2
"""Factories for progress cache and history store instantiation."""

from __future__ import annotations

from codeauditor.config.settings import Settings
from codeauditor.tracking.history_store import BaseHistoryStore
from codeauditor.tracking.progress_cache import BaseProgressCache


def create_progress_cache(settings: Settings | None = None) -> BaseProgressCache:
    """Instantiate the configured progress cache backend.

    Settings default to the JSON cache so that ``status`` and ``stop`` from
    another process see the running scan. Without settings: memory.
    """
    backend = "memory" if settings is None else settings.progress_backend

    if backend == "memory":
        from codeauditor.tracking.progress_cache import MemoryProgressCache
        return MemoryProgressCache()

    if backend == "json":
        from codeauditor.tracking.progress_cache import JsonProgressCache
        return JsonProgressCache(root=settings.progress_root)  # type: ignore[union-attr]

    if backend == "redis":
        from codeauditor.tracking.redis_progress_cache import RedisProgressCache
        if settings is None or not settings.progress_redis_url:
            raise ValueError(
                "PROGRESS_REDIS_URL must be set when PROGRESS_BACKEND=redis"
            )
        return RedisProgressCache(redis_url=settings.progress_redis_url)

    raise ValueError(f"Unsupported progress backend: {backend!r}")


def create_history_store(settings: Settings | None = None) -> BaseHistoryStore:
    """JSON history under ``history_root``; in-memory when no settings are given."""
    if settings is None:
        from codeauditor.tracking.history_store import MemoryHistoryStore
        return MemoryHistoryStore()

    from codeauditor.tracking.history_store import JsonHistoryStore
    return JsonHistoryStore(root=settings.history_root)
