"""Tenant context value object for resolved tenant identification.

Framework-agnostic record of which tenant a request belongs to and where
that id came from. The resolution logic lives in
``tenantdb.presentation.resolution``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

TenantSource = Literal["header", "query", "path", "tenant", "user", "body"]


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for the current request.

    Attributes:
        tenant_id: The tenant identifier as sent by the client.
        source: Which request source supplied it.
    """

    tenant_id: str
    source: TenantSource
