"""Domain probe for tenant resolution in the HTTP middleware.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events of per-request tenant resolution.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from tenantdb.observability_context import ObservationContext


class TenantMiddlewareProbe(Protocol):
    """Domain probe for tenant middleware operations."""

    def tenant_resolved(self, tenant_id: str, source: str) -> None:
        """Record that a request was bound to a tenant."""
        ...

    def tenant_id_missing(self, path: str) -> None:
        """Record that no request source carried a tenant id."""
        ...

    def tenant_not_found(self, tenant_id: str, source: str) -> None:
        """Record that the requested tenant does not exist."""
        ...

    def tenant_resolution_failed(
        self, tenant_id: str | None, error: Exception
    ) -> None:
        """Record that looking up the tenant's database failed."""
        ...

    def with_context(self, context: ObservationContext) -> TenantMiddlewareProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantMiddlewareProbe:
    """Default implementation of TenantMiddlewareProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _fields(self, **kwargs: Any) -> dict[str, Any]:
        if self._context is None:
            return kwargs
        return {**self._context.as_dict(), **kwargs}

    def with_context(self, context: ObservationContext) -> DefaultTenantMiddlewareProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantMiddlewareProbe(logger=self._logger, context=context)

    def tenant_resolved(self, tenant_id: str, source: str) -> None:
        self._logger.debug(
            "tenant_resolved",
            **self._fields(tenant_id=tenant_id, source=source),
        )

    def tenant_id_missing(self, path: str) -> None:
        self._logger.warning(
            "tenant_id_missing",
            **self._fields(path=path),
        )

    def tenant_not_found(self, tenant_id: str, source: str) -> None:
        self._logger.warning(
            "tenant_not_found",
            **self._fields(tenant_id=tenant_id, source=source),
        )

    def tenant_resolution_failed(
        self, tenant_id: str | None, error: Exception
    ) -> None:
        self._logger.error(
            "tenant_resolution_failed",
            **self._fields(
                tenant_id=tenant_id,
                error=str(error),
                error_type=type(error).__name__,
            ),
        )
