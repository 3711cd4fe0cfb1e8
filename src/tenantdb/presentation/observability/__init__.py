"""Observability for the HTTP middleware."""

from tenantdb.presentation.observability.tenant_middleware_probe import (
    DefaultTenantMiddlewareProbe,
    TenantMiddlewareProbe,
)

__all__ = [
    "DefaultTenantMiddlewareProbe",
    "TenantMiddlewareProbe",
]
