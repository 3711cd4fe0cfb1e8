"""Library settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Explicit arguments to ``create_database`` always win.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tenantdb.domain.value_objects import AdapterName, StrategyName


class TenantDBSettings(BaseSettings):
    """Multi-tenant database settings.

    Environment variables:
        TENANTDB_URL: Connection URL, may contain {tenant} (falls back to DATABASE_URL)
        TENANTDB_STRATEGY: Isolation strategy override (row/database)
        TENANTDB_ADAPTER: Adapter override (relational/document)
        TENANTDB_HEADER_NAME: Request header carrying the tenant id (default: x-tenant-id)
        TENANTDB_PARAM_NAME: Query/path/body key carrying the tenant id (default: tenant_id)
        TENANTDB_ECHO_SQL: Log every SQL statement (default: false)
        TENANTDB_POOL_SIZE: Connections per relational engine (default: 5)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TENANTDB_URL", "DATABASE_URL"),
        description="Database connection URL",
    )
    strategy: StrategyName | None = Field(
        default=None,
        description="Isolation strategy (auto-detected from the URL when unset)",
    )
    adapter: AdapterName | None = Field(
        default=None,
        description="Database adapter (auto-detected from the URL when unset)",
    )
    header_name: str = Field(
        default="x-tenant-id",
        description="Request header carrying the tenant id",
    )
    param_name: str = Field(
        default="tenant_id",
        description="Query, path and body key carrying the tenant id",
    )
    echo_sql: bool = Field(default=False, description="Log SQL statements")
    pool_size: int = Field(
        default=5,
        description="Connections per relational engine",
        ge=1,
        le=100,
    )


@lru_cache
def get_tenantdb_settings() -> TenantDBSettings:
    """Get cached tenantdb settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return TenantDBSettings()
