"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping adapter code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from tenantdb.observability_context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for driver connection observability.

    This probe captures domain-significant events related to database
    connections and provisioning without exposing logging details.
    """

    def connection_established(self, backend: str, database: str | None) -> None:
        """Record that a database connection was successfully established."""
        ...

    def connection_failed(
        self, backend: str, database: str | None, error: Exception
    ) -> None:
        """Record that a database connection attempt failed."""
        ...

    def connection_closed(self, backend: str, database: str | None) -> None:
        """Record that a database connection was closed."""
        ...

    def database_provisioned(self, backend: str, database: str) -> None:
        """Record that a tenant database was created."""
        ...

    def database_dropped(self, backend: str, database: str) -> None:
        """Record that a tenant database was dropped."""
        ...

    def tenant_data_deleted(self, backend: str, tenant_id: str, tables: int) -> None:
        """Record that a tenant's rows were purged from shared storage."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog.

    Supports observation context for including request-scoped metadata
    with all log events.
    """

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

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def connection_established(self, backend: str, database: str | None) -> None:
        """Record that a database connection was successfully established."""
        self._logger.info(
            "database_connection_established",
            **self._fields(backend=backend, database=database),
        )

    def connection_failed(
        self, backend: str, database: str | None, error: Exception
    ) -> None:
        """Record that a database connection attempt failed."""
        self._logger.error(
            "database_connection_failed",
            **self._fields(backend=backend, database=database, error=str(error)),
        )

    def connection_closed(self, backend: str, database: str | None) -> None:
        """Record that a database connection was closed."""
        self._logger.info(
            "database_connection_closed",
            **self._fields(backend=backend, database=database),
        )

    def database_provisioned(self, backend: str, database: str) -> None:
        """Record that a tenant database was created."""
        self._logger.info(
            "tenant_database_provisioned",
            **self._fields(backend=backend, database=database),
        )

    def database_dropped(self, backend: str, database: str) -> None:
        """Record that a tenant database was dropped."""
        self._logger.warning(
            "tenant_database_dropped",
            **self._fields(backend=backend, database=database),
        )

    def tenant_data_deleted(self, backend: str, tenant_id: str, tables: int) -> None:
        """Record that a tenant's rows were purged from shared storage."""
        self._logger.warning(
            "tenant_data_deleted",
            **self._fields(backend=backend, tenant_id=tenant_id, tables=tables),
        )
