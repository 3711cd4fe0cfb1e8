"""Multi-tenant database routing for async Python services.

Usage:
    from tenantdb import create_database, create_middleware

    db = create_database("postgresql://app@localhost/{tenant}")
    await db.create_tenant("acme")
    handle = await db.for_tenant("acme")

Logging goes through structlog. ``configure_logging()`` is an optional
setup for applications that do not configure structlog themselves.
"""

from tenantdb.application.tenant_database import TenantDatabase
from tenantdb.database import create_database
from tenantdb.domain.detection import detect_config
from tenantdb.domain.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    InvalidTenantIdError,
    TenantAlreadyExistsError,
    TenantDBError,
    TenantIsolationError,
    TenantNotFoundError,
)
from tenantdb.domain.value_objects import (
    AdapterName,
    HealthStatus,
    StrategyConfig,
    StrategyName,
    TenantId,
)
from tenantdb.infrastructure.document import DocumentClient, TenantScopedCollection
from tenantdb.infrastructure.logging import bind_tenant, configure_logging
from tenantdb.infrastructure.relational import (
    RelationalClient,
    TenantScoped,
    create_all_schema,
)
from tenantdb.infrastructure.settings import TenantDBSettings
from tenantdb.infrastructure.version import __version__
from tenantdb.presentation import (
    TenantContext,
    create_middleware,
    get_tenant_context,
    get_tenant_db,
    tenant_database_lifespan,
)

__all__ = [
    "AdapterName",
    "ConfigurationError",
    "DatabaseConnectionError",
    "DocumentClient",
    "HealthStatus",
    "InvalidTenantIdError",
    "RelationalClient",
    "StrategyConfig",
    "StrategyName",
    "TenantAlreadyExistsError",
    "TenantContext",
    "TenantDBError",
    "TenantDBSettings",
    "TenantDatabase",
    "TenantId",
    "TenantIsolationError",
    "TenantNotFoundError",
    "TenantScoped",
    "TenantScopedCollection",
    "__version__",
    "bind_tenant",
    "create_all_schema",
    "create_database",
    "configure_logging",
    "create_middleware",
    "detect_config",
    "get_tenant_context",
    "get_tenant_db",
    "tenant_database_lifespan",
]
