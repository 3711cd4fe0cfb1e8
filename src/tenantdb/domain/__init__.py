"""Tenant routing domain: identifiers, configuration, and errors."""

from tenantdb.domain.detection import detect_config
from tenantdb.domain.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    InvalidTenantIdError,
    TenantAlreadyExistsError,
    TenantDBError,
    TenantIsolationError,
    TenantNotFoundError,
)
from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.domain.value_objects import (
    TENANT_FIELD,
    TENANT_PLACEHOLDER,
    AdapterName,
    HealthStatus,
    StrategyConfig,
    StrategyName,
    TenantId,
)

__all__ = [
    "TENANT_FIELD",
    "TENANT_PLACEHOLDER",
    "AdapterName",
    "ConfigurationError",
    "DatabaseConnectionError",
    "DatabaseUrlTemplate",
    "HealthStatus",
    "InvalidTenantIdError",
    "StrategyConfig",
    "StrategyName",
    "TenantAlreadyExistsError",
    "TenantDBError",
    "TenantId",
    "TenantIsolationError",
    "TenantNotFoundError",
    "detect_config",
]
