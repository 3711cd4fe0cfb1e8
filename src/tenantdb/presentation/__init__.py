"""FastAPI integration: tenant middleware, dependencies and lifespan."""

from tenantdb.presentation.dependencies import get_tenant_context, get_tenant_db
from tenantdb.presentation.lifespan import tenant_database_lifespan
from tenantdb.presentation.middleware import create_middleware
from tenantdb.presentation.resolution import resolve_tenant
from tenantdb.presentation.tenant_context import TenantContext

__all__ = [
    "TenantContext",
    "create_middleware",
    "get_tenant_context",
    "get_tenant_db",
    "resolve_tenant",
    "tenant_database_lifespan",
]
