"""Database engine creation for async SQLAlchemy.

This module provides factory functions for creating async engines for tenant
and administrative connections, mapping plain connection URLs onto the async
drivers (asyncpg, aiomysql, aiosqlite).
"""

from __future__ import annotations

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from tenantdb.domain.exceptions import ConfigurationError

__all__ = [
    "build_async_url",
    "create_admin_engine",
    "create_tenant_engine",
    "sqlite_existing_only",
]

_ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "mysql": "mysql+aiomysql",
    "sqlite": "sqlite+aiosqlite",
}


def build_async_url(url: str | URL) -> URL:
    """Build an async database URL.

    URLs that already name a driver (``postgresql+asyncpg://``) are kept as-is;
    bare schemes are mapped onto the default async driver.

    Args:
        url: Connection URL string or URL object

    Returns:
        SQLAlchemy URL using an async driver

    Raises:
        ConfigurationError: If the URL cannot be parsed.
    """
    try:
        parsed = make_url(url)
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid database URL: {e}") from e

    driver = _ASYNC_DRIVERS.get(parsed.drivername)
    if driver is not None:
        parsed = parsed.set(drivername=driver)
    return parsed


def sqlite_existing_only(url: URL) -> URL:
    """Rewrite a SQLite file URL so connecting fails when the file is missing.

    The path is opened as a read-write SQLite URI (``mode=rw``) instead of the
    default read-write-create mode. In-memory and URI-form URLs are unchanged.
    """
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return url
    return url.set(
        database=f"file:{database}",
        query={**url.query, "mode": "rw", "uri": "true"},
    )


def create_tenant_engine(url: URL, pool_size: int, echo: bool = False) -> AsyncEngine:
    """Create async engine for tenant traffic.

    Args:
        url: Async connection URL
        pool_size: Connections kept per engine
        echo: Log SQL statements

    Returns:
        Configured async engine
    """
    if url.get_backend_name() == "sqlite":
        return create_async_engine(url, pool_pre_ping=True, echo=echo)

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=0,  # No overflow - strict pool limit
        pool_pre_ping=True,  # Verify connections before using
        echo=echo,
    )


def create_admin_engine(url: URL, echo: bool = False) -> AsyncEngine:
    """Create async engine for CREATE/DROP DATABASE statements.

    These statements cannot run inside a transaction block, so the engine
    runs in AUTOCOMMIT mode with a single pooled connection.
    """
    return create_async_engine(
        url,
        isolation_level="AUTOCOMMIT",
        pool_size=1,
        max_overflow=0,
        pool_pre_ping=True,
        echo=echo,
    )
