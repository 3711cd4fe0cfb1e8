"""Application layer: strategies, connection cache and the facade."""

from tenantdb.application.connection_cache import ConnectionCache, ConnectionCacheEntry
from tenantdb.application.tenant_database import TenantDatabase

__all__ = ["ConnectionCache", "ConnectionCacheEntry", "TenantDatabase"]
