"""Per-tenant connection cache.

The cache slot for a tenant is filled with an ``asyncio.Task`` *before* the
connection completes, so concurrent callers racing on the same tenant await
one shared attempt instead of opening duplicate connections.

Callers are shielded from the task: cancelling a waiting caller does not
cancel the connection attempt, which completes in the background and still
populates the cache.

Entries are never evicted implicitly; there is no TTL and no size cap.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Awaitable, Callable

from tenantdb.ports.adapters import ClientHandle

ConnectionFactory = Callable[[], Awaitable[ClientHandle]]


@dataclass(frozen=True)
class ConnectionCacheEntry:
    """A live tenant handle plus metadata."""

    tenant_id: str
    handle: ClientHandle
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ConnectionCache:
    """Task-backed cache of tenant handles.

    Owned by a single TenantDatabase; nothing else should mutate it.
    """

    def __init__(self) -> None:
        self._slots: dict[str, asyncio.Task[ConnectionCacheEntry]] = {}

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def tenant_ids(self) -> list[str]:
        """Tenants with a cached or in-flight connection."""
        return list(self._slots)

    async def get_or_create(
        self, tenant_id: str, factory: ConnectionFactory
    ) -> ConnectionCacheEntry:
        """Return the cached entry for a tenant, creating it at most once.

        Args:
            tenant_id: Tenant to look up
            factory: Coroutine factory producing a connected handle

        Returns:
            The (possibly shared) cache entry

        Raises:
            Whatever ``factory`` raises. Failed attempts are not cached.
        """
        task = self._slots.get(tenant_id)
        if task is None:
            task = asyncio.ensure_future(self._create(tenant_id, factory))
            self._slots[tenant_id] = task
            task.add_done_callback(
                lambda done: self._discard_failed(tenant_id, done)
            )
        return await asyncio.shield(task)

    async def evict(self, tenant_id: str) -> ConnectionCacheEntry | None:
        """Remove a tenant's slot and return its entry if it connected."""
        task = self._slots.pop(tenant_id, None)
        if task is None:
            return None
        entries = await self._settle([task])
        return entries[0] if entries else None

    async def clear(self) -> list[ConnectionCacheEntry]:
        """Remove every slot and return the entries that connected."""
        tasks = list(self._slots.values())
        self._slots.clear()
        return await self._settle(tasks)

    @staticmethod
    async def _create(
        tenant_id: str, factory: ConnectionFactory
    ) -> ConnectionCacheEntry:
        handle = await factory()
        return ConnectionCacheEntry(tenant_id=tenant_id, handle=handle)

    def _discard_failed(
        self, tenant_id: str, task: asyncio.Task[ConnectionCacheEntry]
    ) -> None:
        if not task.cancelled() and task.exception() is None:
            return
        if self._slots.get(tenant_id) is task:
            del self._slots[tenant_id]

    @staticmethod
    async def _settle(
        tasks: list[asyncio.Task[ConnectionCacheEntry]],
    ) -> list[ConnectionCacheEntry]:
        # Wait for in-flight attempts so their handles can be closed too
        results = await asyncio.gather(*tasks, return_exceptions=True)
        return [
            result for result in results if isinstance(result, ConnectionCacheEntry)
        ]
