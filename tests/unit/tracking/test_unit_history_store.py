# tests/unit/tracking/test_unit_history_store.py — v1
"""Tests for tracking/history_store.py — durable scan records."""

from __future__ import annotations

import pytest

from codeauditor.tracking.history_store import JsonHistoryStore, MemoryHistoryStore


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryHistoryStore()
    return JsonHistoryStore(tmp_path / "history")


class TestHistoryStore:
    @pytest.mark.asyncio
    async def test_create_find(self, store):
        await store.create({"scan_id": "s1", "status": "queued"})
        assert await store.find_by_scan_id("s1") == {"scan_id": "s1", "status": "queued"}

    @pytest.mark.asyncio
    async def test_find_missing(self, store):
        assert await store.find_by_scan_id("nope") is None

    @pytest.mark.asyncio
    async def test_update_merges(self, store):
        await store.create({"scan_id": "s1", "status": "queued", "message": "m"})
        updated = await store.update("s1", {"status": "completed"})
        assert updated == {"scan_id": "s1", "status": "completed", "message": "m"}
        assert (await store.find_by_scan_id("s1"))["status"] == "completed"

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(KeyError):
            await store.update("nope", {"status": "failed"})


class TestJsonHistoryStore:
    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        await JsonHistoryStore(tmp_path).create({"scan_id": "code_1", "status": "queued"})
        assert (await JsonHistoryStore(tmp_path).find_by_scan_id("code_1"))["status"] == "queued"
