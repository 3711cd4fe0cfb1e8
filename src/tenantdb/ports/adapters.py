"""Adapter protocols (ports) for persistence drivers.

An adapter binds one driver family (SQLAlchemy asyncio, PyMongo asyncio) to
the strategies. Strategies depend only on these protocols; the concrete
adapters live in ``tenantdb.infrastructure``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.domain.value_objects import StrategyConfig


@runtime_checkable
class ClientHandle(Protocol):
    """A connected, ready-to-use database handle for one tenant.

    Handles returned for the row strategy share the underlying driver client
    and only carry the tenant filter; closing them leaves the shared client
    open. Handles returned for the database strategy own their client.
    """

    @property
    def tenant_id(self) -> str:
        """Tenant this handle is bound to."""
        ...

    async def close(self) -> None:
        """Release whatever this handle owns. Safe to call twice."""
        ...


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Binding to one persistence driver family."""

    def validate(self, config: StrategyConfig) -> None:
        """Fail fast if this adapter cannot serve the configuration.

        Raises:
            ConfigurationError: If the URL scheme or dialect is unsupported.
        """
        ...

    async def connect(self, url: str, *, must_exist: bool = False) -> Any:
        """Open a driver client for a concrete URL and prove it with a round trip.

        With ``must_exist`` the database named by the URL is never created
        as a side effect of connecting.

        Raises:
            DatabaseConnectionError: If the driver cannot connect.
        """
        ...

    async def close(self, client: Any) -> None:
        """Close a single driver client opened by ``connect``."""
        ...

    async def ping(self, client: Any) -> None:
        """Run a trivial round trip against an open client.

        Raises:
            DatabaseConnectionError: If the round trip fails.
        """
        ...

    def bind_client(self, client: Any, tenant_id: str) -> ClientHandle:
        """Wrap a dedicated client in an unscoped handle that owns it."""
        ...

    def install_tenant_filter(self, client: Any, tenant_id: str) -> ClientHandle:
        """Wrap a shared client so every operation is scoped to one tenant."""
        ...

    async def register_tenant(self, client: Any, tenant_id: str) -> None:
        """Write the tenant registry marker. Idempotent."""
        ...

    async def is_registered(self, client: Any, tenant_id: str) -> bool:
        """Whether the tenant registry marker exists."""
        ...

    async def list_registered(self, client: Any) -> list[str]:
        """All tenant ids present in the registry."""
        ...

    async def delete_tenant_data(self, client: Any, tenant_id: str) -> None:
        """Delete every row/document of a tenant and its registry marker."""
        ...

    async def create_database(
        self, template: DatabaseUrlTemplate, database_name: str
    ) -> None:
        """Provision a physical database on the template's server."""
        ...

    async def drop_database(
        self, template: DatabaseUrlTemplate, database_name: str
    ) -> None:
        """Drop a physical database on the template's server."""
        ...

    async def list_databases(self, template: DatabaseUrlTemplate) -> list[str]:
        """Names of all non-system databases on the template's server."""
        ...

    async def disconnect(self) -> None:
        """Close every client this adapter still tracks. Idempotent."""
        ...
