"""SQLAlchemy asyncio adapter.

Serves PostgreSQL (asyncpg), MySQL (aiomysql) and SQLite (aiosqlite)
through one ``AsyncEngine`` per connection URL. Row isolation relies on the
``TenantScoped`` mixin and ``TenantScopedSession`` events; tenant
existence is tracked in the ``tenantdb_tenants`` registry table.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from sqlalchemy import MetaData, Table, delete, insert, select, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from tenantdb.domain.exceptions import ConfigurationError, DatabaseConnectionError
from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.domain.value_objects import TENANT_FIELD, StrategyConfig, StrategyName
from tenantdb.infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)
from tenantdb.infrastructure.relational.client import RelationalClient
from tenantdb.infrastructure.relational.dialects import (
    DatabaseProvisioner,
    get_provisioner,
)
from tenantdb.infrastructure.relational.engines import (
    build_async_url,
    create_admin_engine,
    create_tenant_engine,
    sqlite_existing_only,
)
from tenantdb.infrastructure.relational.models import (
    REGISTRY_TABLE_NAME,
    registry_metadata,
    tenant_registry,
)

_CONNECT_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


class RelationalAdapter:
    """Adapter for SQL databases via SQLAlchemy asyncio."""

    def __init__(
        self,
        pool_size: int = 5,
        echo: bool = False,
        probe: ConnectionProbe | None = None,
    ):
        """Initialize the adapter.

        Args:
            pool_size: Connections kept per tenant engine
            echo: Log every SQL statement
            probe: Optional observability probe
        """
        self._pool_size = pool_size
        self._echo = echo
        self._probe = probe or DefaultConnectionProbe()
        self._engines: list[AsyncEngine] = []
        self._admin_engines: dict[str, AsyncEngine] = {}
        self._admin_lock = asyncio.Lock()

    @property
    def open_engines(self) -> int:
        """Number of engines opened by ``connect`` and not yet closed."""
        return len(self._engines)

    def validate(self, config: StrategyConfig) -> None:
        if config.strategy is StrategyName.DATABASE:
            template = DatabaseUrlTemplate.parse(config.url)
            get_provisioner(template)
            return

        url = build_async_url(config.url)
        if url.get_backend_name() not in ("postgresql", "mysql", "sqlite"):
            raise ConfigurationError(
                f"Unsupported relational backend: {url.get_backend_name()}"
            )

    async def connect(self, url: str, *, must_exist: bool = False) -> AsyncEngine:
        async_url = build_async_url(url)
        backend = async_url.get_backend_name()
        if must_exist and backend == "sqlite":
            async_url = sqlite_existing_only(async_url)
        engine = create_tenant_engine(async_url, pool_size=self._pool_size, echo=self._echo)

        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except _CONNECT_ERRORS as e:
            await engine.dispose()
            self._probe.connection_failed(backend, async_url.database, e)
            raise DatabaseConnectionError(f"Failed to connect to {backend}: {e}") from e

        self._engines.append(engine)
        self._probe.connection_established(backend, async_url.database)
        return engine

    async def close(self, client: AsyncEngine) -> None:
        tracked = any(engine is client for engine in self._engines)
        self._engines = [engine for engine in self._engines if engine is not client]
        await client.dispose()
        if tracked:
            self._probe.connection_closed(client.url.get_backend_name(), client.url.database)

    async def ping(self, client: AsyncEngine) -> None:
        try:
            async with client.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except _CONNECT_ERRORS as e:
            raise DatabaseConnectionError(f"Database ping failed: {e}") from e

    def bind_client(self, client: AsyncEngine, tenant_id: str) -> RelationalClient:
        return RelationalClient(client, tenant_id, scoped=False, on_close=self.close)

    def install_tenant_filter(self, client: AsyncEngine, tenant_id: str) -> RelationalClient:
        return RelationalClient(client, tenant_id, scoped=True)

    async def register_tenant(self, client: AsyncEngine, tenant_id: str) -> None:
        try:
            async with client.begin() as conn:
                await conn.run_sync(registry_metadata.create_all)
                existing = await conn.scalar(
                    select(tenant_registry.c.tenant_id).where(
                        tenant_registry.c.tenant_id == tenant_id
                    )
                )
                if existing is None:
                    await conn.execute(
                        insert(tenant_registry).values(
                            tenant_id=tenant_id, created_at=datetime.now(UTC)
                        )
                    )
        except IntegrityError:
            # A concurrent registration of the same tenant won the insert
            return

    async def is_registered(self, client: AsyncEngine, tenant_id: str) -> bool:
        async with client.begin() as conn:
            await conn.run_sync(registry_metadata.create_all)
            existing = await conn.scalar(
                select(tenant_registry.c.tenant_id).where(
                    tenant_registry.c.tenant_id == tenant_id
                )
            )
        return existing is not None

    async def list_registered(self, client: AsyncEngine) -> list[str]:
        async with client.begin() as conn:
            await conn.run_sync(registry_metadata.create_all)
            result = await conn.execute(select(tenant_registry.c.tenant_id))
            return list(result.scalars())

    async def delete_tenant_data(self, client: AsyncEngine, tenant_id: str) -> None:
        async with client.begin() as conn:
            await conn.run_sync(registry_metadata.create_all)
            tables = await conn.run_sync(_tenant_tables)
            for table in tables:
                await conn.execute(delete(table).where(table.c[TENANT_FIELD] == tenant_id))
            await conn.execute(
                delete(tenant_registry).where(tenant_registry.c.tenant_id == tenant_id)
            )

        self._probe.tenant_data_deleted(
            client.url.get_backend_name(), tenant_id, tables=len(tables)
        )

    async def create_database(
        self, template: DatabaseUrlTemplate, database_name: str
    ) -> None:
        provisioner = get_provisioner(template)
        admin = await self._admin_engine(template, provisioner)
        await provisioner.create_database(admin, template, database_name)
        self._probe.database_provisioned(provisioner.backend, database_name)

    async def drop_database(
        self, template: DatabaseUrlTemplate, database_name: str
    ) -> None:
        provisioner = get_provisioner(template)
        admin = await self._admin_engine(template, provisioner)
        await provisioner.drop_database(admin, template, database_name)
        self._probe.database_dropped(provisioner.backend, database_name)

    async def list_databases(self, template: DatabaseUrlTemplate) -> list[str]:
        provisioner = get_provisioner(template)
        admin = await self._admin_engine(template, provisioner)
        try:
            return await provisioner.list_databases(admin, template)
        except _CONNECT_ERRORS as e:
            raise DatabaseConnectionError(f"Failed to list databases: {e}") from e

    async def disconnect(self) -> None:
        engines, self._engines = self._engines, []
        async with self._admin_lock:
            admin_engines = list(self._admin_engines.values())
            self._admin_engines.clear()

        for engine in [*engines, *admin_engines]:
            await engine.dispose()
            self._probe.connection_closed(engine.url.get_backend_name(), engine.url.database)

    async def _admin_engine(
        self, template: DatabaseUrlTemplate, provisioner: DatabaseProvisioner
    ) -> AsyncEngine | None:
        """Get the cached AUTOCOMMIT engine for the template's server."""
        if provisioner.system_database is None:
            return None

        key = template.url_for_database(provisioner.system_database)
        async with self._admin_lock:
            engine = self._admin_engines.get(key)
            if engine is None:
                url = build_async_url(key)
                engine = create_admin_engine(url, echo=self._echo)
                try:
                    async with engine.connect() as conn:
                        await conn.execute(text("SELECT 1"))
                except _CONNECT_ERRORS as e:
                    await engine.dispose()
                    self._probe.connection_failed(provisioner.backend, url.database, e)
                    raise DatabaseConnectionError(
                        f"Failed to connect to {provisioner.backend} server: {e}"
                    ) from e
                self._admin_engines[key] = engine
        return engine


def _tenant_tables(connection: Connection) -> list[Table]:
    """Reflect tables carrying a tenant_id column, children before parents."""
    metadata = MetaData()
    metadata.reflect(bind=connection)
    return [
        table
        for table in reversed(metadata.sorted_tables)
        if TENANT_FIELD in table.c and table.name != REGISTRY_TABLE_NAME
    ]
