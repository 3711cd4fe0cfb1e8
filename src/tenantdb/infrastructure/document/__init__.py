"""PyMongo asyncio adapter for tenant-scoped documents."""

from tenantdb.infrastructure.document.adapter import (
    REGISTRY_COLLECTION,
    DocumentAdapter,
)
from tenantdb.infrastructure.document.client import DocumentClient
from tenantdb.infrastructure.document.collection import TenantScopedCollection

__all__ = [
    "REGISTRY_COLLECTION",
    "DocumentAdapter",
    "DocumentClient",
    "TenantScopedCollection",
]
