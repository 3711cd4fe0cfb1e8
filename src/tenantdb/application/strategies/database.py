"""Database-per-tenant isolation strategy.

Every tenant lives in its own physical database whose name is derived from
the ``{tenant}`` placeholder of the configured URL template. Each call to
``get_connection`` opens a dedicated client; the facade caches the result.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from tenantdb.domain.exceptions import TenantAlreadyExistsError
from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.domain.value_objects import StrategyName
from tenantdb.ports.adapters import ClientHandle, DatabaseAdapter

SchemaSetup = Callable[[ClientHandle], Awaitable[None]]


class DatabaseStrategy:
    """Connection-per-tenant strategy over physically separate databases."""

    name = StrategyName.DATABASE

    def __init__(
        self,
        url: str,
        adapter: DatabaseAdapter,
        schema_setup: SchemaSetup | None = None,
    ):
        """Initialize the strategy.

        Args:
            url: Connection URL template containing ``{tenant}``
            adapter: Driver adapter used for every operation
            schema_setup: Optional coroutine run against a freshly
                provisioned tenant database

        Raises:
            ConfigurationError: If the URL is not a valid template.
        """
        self._template = DatabaseUrlTemplate.parse(url)
        self._adapter = adapter
        self._schema_setup = schema_setup

    @property
    def template(self) -> DatabaseUrlTemplate:
        """Parsed URL template."""
        return self._template

    async def get_connection(self, tenant_id: str) -> ClientHandle:
        # Provisioning only happens in create_tenant
        client = await self._adapter.connect(
            self._template.url_for_tenant(tenant_id), must_exist=True
        )
        return self._adapter.bind_client(client, tenant_id)

    async def create_tenant(self, tenant_id: str) -> None:
        if await self.tenant_exists(tenant_id):
            raise TenantAlreadyExistsError(tenant_id)

        await self._adapter.create_database(
            self._template, self._template.database_name(tenant_id)
        )

        if self._schema_setup is not None:
            handle = await self.get_connection(tenant_id)
            try:
                await self._schema_setup(handle)
            finally:
                await handle.close()

    async def delete_tenant(self, tenant_id: str) -> None:
        await self._adapter.drop_database(
            self._template, self._template.database_name(tenant_id)
        )

    async def tenant_exists(self, tenant_id: str) -> bool:
        databases = await self._adapter.list_databases(self._template)
        return self._template.database_name(tenant_id) in databases

    async def list_tenants(self) -> list[str]:
        databases = await self._adapter.list_databases(self._template)
        tenants = (self._template.tenant_from_database(name) for name in databases)
        return [tenant_id for tenant_id in tenants if tenant_id is not None]

    async def check_health(self) -> None:
        await self._adapter.list_databases(self._template)

    async def disconnect(self) -> None:
        # Tenant clients are owned by the facade cache, admin clients by the adapter
        return None
