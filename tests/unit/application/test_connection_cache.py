"""Unit tests for the task-backed connection cache."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from tenantdb.application.connection_cache import ConnectionCache, ConnectionCacheEntry
from tenantdb.domain.exceptions import DatabaseConnectionError


class TestGetOrCreate:
    """Tests for ConnectionCache.get_or_create."""

    @pytest.mark.asyncio
    async def test_first_call_creates_entry(self, handle_factory):
        cache = ConnectionCache()
        factory = AsyncMock(return_value=handle_factory("acme"))

        entry = await cache.get_or_create("acme", factory)

        assert isinstance(entry, ConnectionCacheEntry)
        assert entry.tenant_id == "acme"
        assert "acme" in cache
        assert len(cache) == 1
        factory.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_call_reuses_entry(self, handle_factory):
        cache = ConnectionCache()
        factory = AsyncMock(return_value=handle_factory("acme"))

        first = await cache.get_or_create("acme", factory)
        second = await cache.get_or_create("acme", factory)

        assert first is second
        factory.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_attempt(self, handle_factory):
        """Racing callers must not open duplicate connections."""
        cache = ConnectionCache()
        gate = asyncio.Event()
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            await gate.wait()
            return handle_factory("acme")

        waiters = [
            asyncio.create_task(cache.get_or_create("acme", factory)) for _ in range(10)
        ]
        await asyncio.sleep(0)
        gate.set()
        entries = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(entry is entries[0] for entry in entries)

    @pytest.mark.asyncio
    async def test_failed_attempt_is_not_cached(self, handle_factory):
        cache = ConnectionCache()
        handle = handle_factory("acme")
        factory = AsyncMock(side_effect=[DatabaseConnectionError("down"), handle])

        with pytest.raises(DatabaseConnectionError):
            await cache.get_or_create("acme", factory)
        assert "acme" not in cache

        entry = await cache.get_or_create("acme", factory)
        assert entry.handle is handle
        assert factory.await_count == 2

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_attempt(self, handle_factory):
        """The attempt finishes in the background and fills the cache."""
        cache = ConnectionCache()
        gate = asyncio.Event()
        handle = handle_factory("acme")

        async def factory():
            await gate.wait()
            return handle

        caller = asyncio.create_task(cache.get_or_create("acme", factory))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        gate.set()
        entry = await cache.get_or_create("acme", AsyncMock())

        assert entry.handle is handle


class TestEviction:
    """Tests for evict and clear."""

    @pytest.mark.asyncio
    async def test_evict_returns_entry(self, handle_factory):
        cache = ConnectionCache()
        await cache.get_or_create("acme", AsyncMock(return_value=handle_factory("acme")))

        entry = await cache.evict("acme")

        assert entry is not None
        assert entry.tenant_id == "acme"
        assert "acme" not in cache

    @pytest.mark.asyncio
    async def test_evict_unknown_tenant_returns_none(self):
        cache = ConnectionCache()
        assert await cache.evict("ghost") is None

    @pytest.mark.asyncio
    async def test_clear_returns_connected_entries(self, handle_factory):
        cache = ConnectionCache()
        await cache.get_or_create("a", AsyncMock(return_value=handle_factory("a")))
        await cache.get_or_create("b", AsyncMock(return_value=handle_factory("b")))

        entries = await cache.clear()

        assert sorted(entry.tenant_id for entry in entries) == ["a", "b"]
        assert len(cache) == 0
        assert cache.tenant_ids == []
