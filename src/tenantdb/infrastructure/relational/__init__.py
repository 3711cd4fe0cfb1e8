"""SQLAlchemy asyncio adapter and ORM helpers for tenant-scoped data."""

from tenantdb.infrastructure.relational.adapter import RelationalAdapter
from tenantdb.infrastructure.relational.client import (
    RelationalClient,
    create_all_schema,
)
from tenantdb.infrastructure.relational.engines import build_async_url
from tenantdb.infrastructure.relational.models import (
    REGISTRY_TABLE_NAME,
    TenantScoped,
    tenant_registry,
)
from tenantdb.infrastructure.relational.session import TenantScopedSession

__all__ = [
    "REGISTRY_TABLE_NAME",
    "RelationalAdapter",
    "RelationalClient",
    "TenantScoped",
    "TenantScopedSession",
    "build_async_url",
    "create_all_schema",
    "tenant_registry",
]
