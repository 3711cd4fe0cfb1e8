"""Value objects for the tenantdb domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for tenant identifiers and routing configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from tenantdb.domain.exceptions import InvalidTenantIdError

TENANT_FIELD = "tenant_id"
"""Column / document field that carries the tenant in shared storage."""

TENANT_PLACEHOLDER = "{tenant}"

TENANT_ID_MAX_LENGTH = 63

_TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class StrategyName(StrEnum):
    """Tenant isolation policies."""

    ROW = "row"
    DATABASE = "database"


class AdapterName(StrEnum):
    """Persistence driver families."""

    RELATIONAL = "relational"
    DOCUMENT = "document"


@dataclass(frozen=True)
class TenantId:
    """Identifier for a tenant.

    ASCII letters, digits, underscore and hyphen only, at most 63
    characters so it always fits a PostgreSQL identifier.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @staticmethod
    def is_valid(value: str | None) -> bool:
        """Check a raw value against the tenant id format without raising."""
        return (
            bool(value)
            and len(value) <= TENANT_ID_MAX_LENGTH
            and _TENANT_ID_PATTERN.match(value) is not None
        )

    @classmethod
    def from_string(cls, value: str | None) -> TenantId:
        """Create TenantId from string value.

        Args:
            value: Raw tenant identifier

        Returns:
            TenantId instance

        Raises:
            InvalidTenantIdError: If value is empty or malformed
        """
        if not value:
            raise InvalidTenantIdError("Tenant ID is required")

        if len(value) > TENANT_ID_MAX_LENGTH:
            raise InvalidTenantIdError(
                f"Tenant ID must be at most {TENANT_ID_MAX_LENGTH} characters",
                tenant_id=value,
            )

        if _TENANT_ID_PATTERN.match(value) is None:
            raise InvalidTenantIdError(
                "Tenant ID must contain only alphanumeric characters, "
                "underscores, and hyphens",
                tenant_id=value,
            )

        return cls(value=value)


@dataclass(frozen=True)
class StrategyConfig:
    """Routing configuration resolved once at facade construction.

    Attributes:
        url: Connection URL, possibly containing the tenant placeholder.
        strategy: Isolation policy in effect.
        adapter: Driver family in effect.
    """

    url: str
    strategy: StrategyName
    adapter: AdapterName

    @property
    def has_placeholder(self) -> bool:
        """Whether the URL is a per-tenant template."""
        return TENANT_PLACEHOLDER in self.url


@dataclass(frozen=True)
class HealthStatus:
    """Snapshot of facade health, as returned by TenantDatabase.health()."""

    healthy: bool
    connections: int
    strategy: StrategyName
    adapter: AdapterName
    error: str | None = None
