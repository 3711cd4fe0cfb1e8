"""Domain probes for the application layer."""

from tenantdb.application.observability.tenant_database_probe import (
    DefaultTenantDatabaseProbe,
    TenantDatabaseProbe,
)

__all__ = ["DefaultTenantDatabaseProbe", "TenantDatabaseProbe"]
