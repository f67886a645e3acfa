# src/tracking/redis_progress_cache.py — v1
"""Redis-based progress cache (PROGRESS_BACKEND=redis).

Requires 'redis' package: pip install redis.
Lets pollers in other processes read scan progress.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from codeauditor.tracking.progress_cache import BaseProgressCache

logger = logging.getLogger(__name__)


class RedisProgressCache(BaseProgressCache):
    """Redis-backed progress cache using native key expiry."""

    def __init__(self, redis_url: str, client: Any = None) -> None:
        if client is None:
            try:
                import redis
            except ImportError as e:
                raise ImportError(
                    "redis package required: pip install redis"
                ) from e
            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def get(self, key: str) -> dict[str, Any] | None:
        data = self._client.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Failed to deserialize progress entry %s: %s", key, e)
            return None

    async def put(self, key: str, value: dict[str, Any], ttl_s: int) -> None:
        self._client.set(key, json.dumps(value, default=str), ex=ttl_s)

    async def delete(self, key: str) -> None:
        self._client.delete(key)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
