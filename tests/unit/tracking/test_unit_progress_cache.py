# tests/unit/tracking/test_unit_progress_cache.py — v1
"""Tests for tracking/progress_cache.py and tracking/redis_progress_cache.py."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from codeauditor.tracking.progress_cache import JsonProgressCache, MemoryProgressCache
from codeauditor.tracking.redis_progress_cache import RedisProgressCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoryProgressCache:
    @pytest.mark.asyncio
    async def test_put_get(self):
        cache = MemoryProgressCache()
        await cache.put("k", {"a": 1}, 60)
        assert await cache.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_missing(self):
        assert await MemoryProgressCache().get("nope") is None

    @pytest.mark.asyncio
    async def test_expiry(self):
        clock = FakeClock()
        cache = MemoryProgressCache(clock=clock)
        await cache.put("k", {"a": 1}, 10)
        clock.now += 9
        assert await cache.get("k") == {"a": 1}
        clock.now += 1
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_copies(self):
        cache = MemoryProgressCache()
        value = {"a": [1]}
        await cache.put("k", value, 60)
        value["a"].append(2)
        got = await cache.get("k")
        got["a"].append(3)
        assert await cache.get("k") == {"a": [1]}

    @pytest.mark.asyncio
    async def test_delete(self):
        cache = MemoryProgressCache()
        await cache.put("k", {"a": 1}, 60)
        await cache.delete("k")
        await cache.delete("k")
        assert await cache.get("k") is None


class TestJsonProgressCache:
    @pytest.mark.asyncio
    async def test_put_get_with_colon_keys(self, tmp_path):
        cache = JsonProgressCache(tmp_path)
        await cache.put("codeauditor:scan:s1", {"status": "scanning"}, 60)
        assert await cache.get("codeauditor:scan:s1") == {"status": "scanning"}
        assert (tmp_path / "codeauditor__scan__s1.json").exists()

    @pytest.mark.asyncio
    async def test_expiry_removes_file(self, tmp_path):
        clock = FakeClock()
        cache = JsonProgressCache(tmp_path, clock=clock)
        await cache.put("k", {"a": 1}, 5)
        clock.now += 5
        assert await cache.get("k") is None
        assert not (tmp_path / "k.json").exists()

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        cache = JsonProgressCache(tmp_path)
        (tmp_path / "k.json").write_text("{broken")
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_shared_between_instances(self, tmp_path):
        await JsonProgressCache(tmp_path).put("k", {"a": 1}, 60)
        assert await JsonProgressCache(tmp_path).get("k") == {"a": 1}


class TestRedisProgressCache:
    @pytest.mark.asyncio
    async def test_put_uses_native_expiry(self):
        client = MagicMock()
        cache = RedisProgressCache("redis://unused", client=client)
        await cache.put("k", {"a": 1}, 30)
        client.set.assert_called_once_with("k", '{"a": 1}', ex=30)

    @pytest.mark.asyncio
    async def test_get_decodes(self):
        client = MagicMock()
        client.get.return_value = '{"a": 1}'
        assert await RedisProgressCache("redis://unused", client=client).get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_get_missing_and_corrupt(self):
        client = MagicMock()
        client.get.side_effect = [None, "{bad"]
        cache = RedisProgressCache("redis://unused", client=client)
        assert await cache.get("k") is None
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_and_close(self):
        client = MagicMock()
        cache = RedisProgressCache("redis://unused", client=client)
        await cache.delete("k")
        cache.close()
        client.delete.assert_called_once_with("k")
        client.close.assert_called_once()
