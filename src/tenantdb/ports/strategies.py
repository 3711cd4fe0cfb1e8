"""Tenancy strategy protocol (port).

Both isolation policies expose the same contract and differ only in how
they realise it. The facade dispatches to exactly one strategy instance,
chosen at construction time.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenantdb.domain.value_objects import StrategyName
from tenantdb.ports.adapters import ClientHandle


@runtime_checkable
class TenancyStrategy(Protocol):
    """Isolation policy for tenants.

    Implementations may assume non-empty tenant ids; the facade validates
    input before delegating.
    """

    name: StrategyName

    async def get_connection(self, tenant_id: str) -> ClientHandle:
        """Return a connected handle scoped to the tenant."""
        ...

    async def create_tenant(self, tenant_id: str) -> None:
        """Provision a tenant.

        Raises:
            TenantAlreadyExistsError: If the tenant's database already exists
                (database strategy only).
        """
        ...

    async def delete_tenant(self, tenant_id: str) -> None:
        """Irreversibly remove a tenant and all of its data."""
        ...

    async def tenant_exists(self, tenant_id: str) -> bool:
        """Whether the tenant is known to this strategy."""
        ...

    async def list_tenants(self) -> list[str]:
        """All known tenant ids, in no particular order."""
        ...

    async def check_health(self) -> None:
        """Run a cheap round trip against the backing store.

        Raises:
            DatabaseConnectionError: If the store is unreachable.
        """
        ...

    async def disconnect(self) -> None:
        """Close connections owned by the strategy itself. Idempotent."""
        ...
