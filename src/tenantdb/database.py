"""Composition root: build a ``TenantDatabase`` from a URL or settings.

Strategy and adapter implementations are chosen once, from enum-keyed
factory tables, after ``detect_config`` has resolved the configuration.
"""

from __future__ import annotations

from typing import Callable

from tenantdb.application.observability.tenant_database_probe import (
    TenantDatabaseProbe,
)
from tenantdb.application.strategies.database import DatabaseStrategy, SchemaSetup
from tenantdb.application.strategies.row import RowStrategy
from tenantdb.application.tenant_database import TenantDatabase
from tenantdb.domain.detection import detect_config
from tenantdb.domain.value_objects import AdapterName, StrategyConfig, StrategyName
from tenantdb.infrastructure.document.adapter import DocumentAdapter
from tenantdb.infrastructure.relational.adapter import RelationalAdapter
from tenantdb.infrastructure.settings import TenantDBSettings, get_tenantdb_settings
from tenantdb.ports.adapters import DatabaseAdapter
from tenantdb.ports.strategies import TenancyStrategy

AdapterFactory = Callable[[TenantDBSettings], DatabaseAdapter]
StrategyFactory = Callable[
    [StrategyConfig, DatabaseAdapter, SchemaSetup | None], TenancyStrategy
]

ADAPTER_FACTORIES: dict[AdapterName, AdapterFactory] = {
    AdapterName.RELATIONAL: lambda settings: RelationalAdapter(
        pool_size=settings.pool_size, echo=settings.echo_sql
    ),
    AdapterName.DOCUMENT: lambda settings: DocumentAdapter(),
}

STRATEGY_FACTORIES: dict[StrategyName, StrategyFactory] = {
    StrategyName.ROW: lambda config, adapter, schema_setup: RowStrategy(
        config.url, adapter
    ),
    StrategyName.DATABASE: lambda config, adapter, schema_setup: DatabaseStrategy(
        config.url, adapter, schema_setup=schema_setup
    ),
}


def create_database(
    url: str | None = None,
    *,
    strategy: str | StrategyName | None = None,
    adapter: str | AdapterName | None = None,
    settings: TenantDBSettings | None = None,
    schema_setup: SchemaSetup | None = None,
    probe: TenantDatabaseProbe | None = None,
) -> TenantDatabase:
    """Create a multi-tenant database facade.

    No connection is opened here; the first tenant operation connects.

    Args:
        url: Connection URL; ``{tenant}`` in the database name selects the
            database-per-tenant strategy (default: ``TENANTDB_URL`` / ``DATABASE_URL``)
        strategy: Explicit strategy ("row" or "database")
        adapter: Explicit adapter ("relational" or "document")
        settings: Settings to read defaults from (default: environment)
        schema_setup: Coroutine run against every newly provisioned tenant
            database (database strategy only)
        probe: Optional facade observability probe

    Returns:
        Configured TenantDatabase

    Raises:
        ConfigurationError: If the URL is missing, a name is unknown, or the
            adapter cannot serve the configuration.
    """
    settings = settings or get_tenantdb_settings()

    config = detect_config(
        url or settings.url,
        strategy=strategy if strategy is not None else settings.strategy,
        adapter=adapter if adapter is not None else settings.adapter,
    )

    database_adapter = ADAPTER_FACTORIES[config.adapter](settings)
    database_adapter.validate(config)

    tenancy_strategy = STRATEGY_FACTORIES[config.strategy](
        config, database_adapter, schema_setup
    )

    return TenantDatabase(
        config=config,
        adapter=database_adapter,
        strategy=tenancy_strategy,
        probe=probe,
    )
