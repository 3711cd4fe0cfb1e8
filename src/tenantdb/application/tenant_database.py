"""Tenant database facade.

``TenantDatabase`` is the single public entry point of the package. It holds
the resolved configuration, the chosen strategy and adapter, and the
per-tenant connection cache. Instances are explicitly constructed (see
``tenantdb.create_database``) and passed around; there is no process-wide
singleton.

Usage:
    db = create_database("postgresql://app@localhost/{tenant}")
    await db.create_tenant("acme")
    handle = await db.for_tenant("acme")
    async with handle.session() as session:
        ...
    await db.disconnect()
"""

from __future__ import annotations

import asyncio
import signal
from typing import Callable, Iterable

from tenantdb.application.connection_cache import ConnectionCache
from tenantdb.application.observability.tenant_database_probe import (
    DefaultTenantDatabaseProbe,
    TenantDatabaseProbe,
)
from tenantdb.domain.exceptions import InvalidTenantIdError
from tenantdb.domain.value_objects import HealthStatus, StrategyConfig, TenantId
from tenantdb.ports.adapters import ClientHandle, DatabaseAdapter
from tenantdb.ports.strategies import TenancyStrategy

DEFAULT_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TenantDatabase:
    """Multi-tenant database facade.

    Attributes:
        config: Resolved routing configuration
    """

    def __init__(
        self,
        config: StrategyConfig,
        adapter: DatabaseAdapter,
        strategy: TenancyStrategy,
        probe: TenantDatabaseProbe | None = None,
    ):
        """Initialize the facade.

        Args:
            config: Routing configuration resolved by ``detect_config``
            adapter: Adapter shared with the strategy
            strategy: Strategy matching ``config.strategy``
            probe: Optional observability probe
        """
        self.config = config
        self._adapter = adapter
        self._strategy = strategy
        self._probe = probe or DefaultTenantDatabaseProbe()
        self._cache = ConnectionCache()
        self._shutdown_signals: tuple[signal.Signals, ...] = ()
        self._shutdown_task: asyncio.Task[None] | None = None

    @property
    def strategy(self) -> TenancyStrategy:
        """Strategy in effect."""
        return self._strategy

    @property
    def connection_count(self) -> int:
        """Number of cached or in-flight tenant connections."""
        return len(self._cache)

    @property
    def cached_tenants(self) -> list[str]:
        """Tenants with a cached or in-flight connection."""
        return self._cache.tenant_ids

    async def for_tenant(self, tenant_id: str) -> ClientHandle:
        """Get the database handle for a tenant.

        The first call for a tenant connects; later calls, including ones
        racing with the first, share the same handle.

        Args:
            tenant_id: Tenant identifier

        Returns:
            Connected handle scoped to the tenant

        Raises:
            InvalidTenantIdError: If tenant_id is empty.
            DatabaseConnectionError: If the driver cannot connect.
        """
        self._require(tenant_id)

        reused = tenant_id in self._cache
        try:
            entry = await self._cache.get_or_create(
                tenant_id, self._connector(tenant_id)
            )
        except Exception as e:
            self._probe.tenant_connection_failed(tenant_id=tenant_id, error=e)
            raise

        if reused:
            self._probe.tenant_connection_reused(tenant_id=tenant_id)
        return entry.handle

    async def create_tenant(self, tenant_id: str) -> None:
        """Provision a new tenant.

        Raises:
            InvalidTenantIdError: If tenant_id is empty or malformed (no I/O).
            TenantAlreadyExistsError: If the tenant's database already exists.
        """
        TenantId.from_string(tenant_id)
        await self._strategy.create_tenant(tenant_id)
        self._probe.tenant_created(
            tenant_id=tenant_id, strategy=self.config.strategy.value
        )

    async def delete_tenant(self, tenant_id: str) -> None:
        """Irreversibly delete a tenant and its data.

        The tenant's cached handle is closed first.

        Raises:
            InvalidTenantIdError: If tenant_id is empty or malformed (no I/O).
        """
        TenantId.from_string(tenant_id)

        entry = await self._cache.evict(tenant_id)
        if entry is not None:
            await entry.handle.close()
            self._probe.tenant_connection_evicted(tenant_id=tenant_id)

        await self._strategy.delete_tenant(tenant_id)
        self._probe.tenant_deleted(
            tenant_id=tenant_id, strategy=self.config.strategy.value
        )

    async def tenant_exists(self, tenant_id: str) -> bool:
        """Check whether a tenant exists.

        Empty or malformed ids simply do not exist; no error is raised and
        no I/O happens for them.
        """
        if not TenantId.is_valid(tenant_id):
            return False
        return await self._strategy.tenant_exists(tenant_id)

    async def list_tenants(
        self,
        *,
        predicate: Callable[[str], bool] | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """List known tenants in no particular order.

        Args:
            predicate: Optional filter applied to each tenant id
            limit: Optional maximum number of ids to return
        """
        tenants = await self._strategy.list_tenants()
        if predicate is not None:
            tenants = [tenant_id for tenant_id in tenants if predicate(tenant_id)]
        if limit is not None:
            tenants = tenants[:limit]
        return tenants

    async def health(self) -> HealthStatus:
        """Report connectivity of the backing store. Never raises."""
        try:
            await self._strategy.check_health()
        except Exception as e:
            self._probe.health_check_failed(error=e)
            return self._health(healthy=False, error=str(e))
        return self._health(healthy=True)

    async def disconnect(self) -> None:
        """Close every cached connection, the strategy and the adapter.

        Safe to call repeatedly.
        """
        entries = await self._cache.clear()
        for entry in entries:
            await entry.handle.close()
        await self._strategy.disconnect()
        await self._adapter.disconnect()
        self._probe.database_disconnected(connection_count=len(entries))

    def register_shutdown_hook(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        signals: Iterable[signal.Signals] = DEFAULT_SHUTDOWN_SIGNALS,
    ) -> None:
        """Disconnect when the event loop receives a termination signal.

        This is opt-in; the embedding application decides when to call it.
        Registers at most once per facade.

        Args:
            loop: Event loop to install handlers on (default: running loop)
            signals: Signals that trigger the disconnect
        """
        if self._shutdown_signals:
            return

        loop = loop or asyncio.get_running_loop()
        installed = tuple(signals)
        for sig in installed:
            loop.add_signal_handler(sig, self._schedule_disconnect, loop)

        self._shutdown_signals = installed
        self._probe.shutdown_hook_registered(
            signals=[sig.name for sig in installed]
        )

    def _schedule_disconnect(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._shutdown_task is None or self._shutdown_task.done():
            self._shutdown_task = loop.create_task(self._disconnect_on_shutdown())

    async def _disconnect_on_shutdown(self) -> None:
        try:
            await self.disconnect()
        except Exception as e:
            self._probe.shutdown_disconnect_failed(error=e)

    def _connector(self, tenant_id: str):
        async def connect() -> ClientHandle:
            handle = await self._strategy.get_connection(tenant_id)
            self._probe.tenant_connection_opened(
                tenant_id=tenant_id, strategy=self.config.strategy.value
            )
            return handle

        return connect

    def _health(self, healthy: bool, error: str | None = None) -> HealthStatus:
        return HealthStatus(
            healthy=healthy,
            connections=len(self._cache),
            strategy=self.config.strategy,
            adapter=self.config.adapter,
            error=error,
        )

    @staticmethod
    def _require(tenant_id: str) -> None:
        if not tenant_id:
            raise InvalidTenantIdError("Tenant ID is required")
