"""Row-level isolation strategy.

All tenants share one database. Isolation comes from a ``tenant_id`` column
(or document field) that the adapter filters on for every operation issued
through a tenant handle.

Tenant existence is tracked in an explicit registry rather than by scanning
every table for a matching row.
"""

from __future__ import annotations

import asyncio
from typing import Any

from tenantdb.domain.value_objects import StrategyName
from tenantdb.ports.adapters import ClientHandle, DatabaseAdapter


class RowStrategy:
    """Shared-connection strategy with query-level tenant filtering."""

    name = StrategyName.ROW

    def __init__(self, url: str, adapter: DatabaseAdapter):
        """Initialize the strategy.

        Args:
            url: Connection URL of the shared database
            adapter: Driver adapter used for every operation
        """
        self._url = url
        self._adapter = adapter
        self._client: Any | None = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        """Whether the shared client has been established."""
        return self._client is not None

    async def _shared_client(self) -> Any:
        """Return the shared client, connecting on first use."""
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = await self._adapter.connect(self._url)
        return self._client

    async def get_connection(self, tenant_id: str) -> ClientHandle:
        client = await self._shared_client()
        return self._adapter.install_tenant_filter(client, tenant_id)

    async def create_tenant(self, tenant_id: str) -> None:
        # Rows need no provisioning; the registry marker makes the tenant known
        client = await self._shared_client()
        await self._adapter.register_tenant(client, tenant_id)

    async def delete_tenant(self, tenant_id: str) -> None:
        client = await self._shared_client()
        await self._adapter.delete_tenant_data(client, tenant_id)

    async def tenant_exists(self, tenant_id: str) -> bool:
        client = await self._shared_client()
        return await self._adapter.is_registered(client, tenant_id)

    async def list_tenants(self) -> list[str]:
        client = await self._shared_client()
        return await self._adapter.list_registered(client)

    async def check_health(self) -> None:
        client = await self._shared_client()
        await self._adapter.ping(client)

    async def disconnect(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await self._adapter.close(client)
