"""Domain probe for the tenant database facade.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events of the tenant connection lifecycle without
exposing logging details to the facade.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from tenantdb.observability_context import ObservationContext


class TenantDatabaseProbe(Protocol):
    """Domain probe for tenant database operations."""

    def tenant_connection_opened(self, tenant_id: str, strategy: str) -> None:
        """Record that a new connection was established for a tenant."""
        ...

    def tenant_connection_reused(self, tenant_id: str) -> None:
        """Record that a cached connection was handed out."""
        ...

    def tenant_connection_failed(self, tenant_id: str, error: Exception) -> None:
        """Record that establishing a tenant connection failed."""
        ...

    def tenant_connection_evicted(self, tenant_id: str) -> None:
        """Record that a cached tenant connection was closed and dropped."""
        ...

    def tenant_created(self, tenant_id: str, strategy: str) -> None:
        """Record that a tenant was provisioned."""
        ...

    def tenant_deleted(self, tenant_id: str, strategy: str) -> None:
        """Record that a tenant and its data were removed."""
        ...

    def health_check_failed(self, error: Exception) -> None:
        """Record that a health check could not reach the store."""
        ...

    def database_disconnected(self, connection_count: int) -> None:
        """Record that all connections were closed."""
        ...

    def shutdown_hook_registered(self, signals: list[str]) -> None:
        """Record that shutdown signal handlers were installed."""
        ...

    def shutdown_disconnect_failed(self, error: Exception) -> None:
        """Record that the signal-triggered disconnect raised."""
        ...

    def with_context(self, context: ObservationContext) -> TenantDatabaseProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantDatabaseProbe:
    """Default implementation of TenantDatabaseProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _fields(self, **kwargs: Any) -> dict[str, Any]:
        """Merge context metadata with event fields."""
        if self._context is None:
            return kwargs
        return {**self._context.as_dict(), **kwargs}

    def with_context(
        self, context: ObservationContext
    ) -> DefaultTenantDatabaseProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantDatabaseProbe(logger=self._logger, context=context)

    def tenant_connection_opened(self, tenant_id: str, strategy: str) -> None:
        self._logger.info(
            "tenant_connection_opened",
            **self._fields(tenant_id=tenant_id, strategy=strategy),
        )

    def tenant_connection_reused(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_connection_reused",
            **self._fields(tenant_id=tenant_id),
        )

    def tenant_connection_failed(self, tenant_id: str, error: Exception) -> None:
        self._logger.error(
            "tenant_connection_failed",
            **self._fields(tenant_id=tenant_id, error=str(error)),
        )

    def tenant_connection_evicted(self, tenant_id: str) -> None:
        self._logger.info(
            "tenant_connection_evicted",
            **self._fields(tenant_id=tenant_id),
        )

    def tenant_created(self, tenant_id: str, strategy: str) -> None:
        self._logger.info(
            "tenant_created",
            **self._fields(tenant_id=tenant_id, strategy=strategy),
        )

    def tenant_deleted(self, tenant_id: str, strategy: str) -> None:
        self._logger.warning(
            "tenant_deleted",
            **self._fields(tenant_id=tenant_id, strategy=strategy),
        )

    def health_check_failed(self, error: Exception) -> None:
        self._logger.error(
            "tenant_database_health_check_failed",
            **self._fields(error=str(error)),
        )

    def database_disconnected(self, connection_count: int) -> None:
        self._logger.info(
            "tenant_database_disconnected",
            **self._fields(connection_count=connection_count),
        )

    def shutdown_hook_registered(self, signals: list[str]) -> None:
        self._logger.debug(
            "tenant_database_shutdown_hook_registered",
            **self._fields(signals=signals),
        )

    def shutdown_disconnect_failed(self, error: Exception) -> None:
        self._logger.error(
            "tenant_database_shutdown_disconnect_failed",
            **self._fields(error=str(error)),
        )
