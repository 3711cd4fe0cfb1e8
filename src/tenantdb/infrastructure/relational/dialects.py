"""Per-dialect database provisioning.

Each provisioner knows how to create, drop and enumerate databases on one
backend. Server-based backends run their statements over an AUTOCOMMIT
admin engine connected to the backend's system database; SQLite keeps one
file per database next to the template path.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from tenantdb.domain.exceptions import ConfigurationError
from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.infrastructure.relational.engines import build_async_url


class DatabaseProvisioner(Protocol):
    """Creates and drops databases on one backend."""

    backend: str
    system_database: str | None

    async def create_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None: ...

    async def drop_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None: ...

    async def list_databases(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate
    ) -> list[str]: ...


class PostgresProvisioner:
    backend = "postgresql"
    system_database = "postgres"

    _SYSTEM_DATABASES = frozenset({"postgres", "template0", "template1"})

    async def create_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None:
        assert engine is not None
        quoted = engine.dialect.identifier_preparer.quote(name)
        async with engine.connect() as conn:
            await conn.execute(text(f"CREATE DATABASE {quoted}"))

    async def drop_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None:
        assert engine is not None
        quoted = engine.dialect.identifier_preparer.quote(name)
        async with engine.connect() as conn:
            # Open sessions would block DROP DATABASE
            await conn.execute(
                text(
                    "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                    "WHERE datname = :name AND pid <> pg_backend_pid()"
                ),
                {"name": name},
            )
            await conn.execute(text(f"DROP DATABASE IF EXISTS {quoted}"))

    async def list_databases(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate
    ) -> list[str]:
        assert engine is not None
        async with engine.connect() as conn:
            result = await conn.execute(
                text("SELECT datname FROM pg_database WHERE datistemplate = false")
            )
            return [
                name for name in result.scalars() if name not in self._SYSTEM_DATABASES
            ]


class MySQLProvisioner:
    backend = "mysql"
    system_database = "mysql"

    _SYSTEM_DATABASES = frozenset(
        {"information_schema", "mysql", "performance_schema", "sys"}
    )

    async def create_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None:
        assert engine is not None
        quoted = engine.dialect.identifier_preparer.quote(name)
        async with engine.connect() as conn:
            await conn.execute(text(f"CREATE DATABASE {quoted}"))

    async def drop_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None:
        assert engine is not None
        quoted = engine.dialect.identifier_preparer.quote(name)
        async with engine.connect() as conn:
            await conn.execute(text(f"DROP DATABASE IF EXISTS {quoted}"))

    async def list_databases(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate
    ) -> list[str]:
        assert engine is not None
        async with engine.connect() as conn:
            result = await conn.execute(
                text("SELECT schema_name FROM information_schema.schemata")
            )
            return [
                name for name in result.scalars() if name not in self._SYSTEM_DATABASES
            ]


class SQLiteProvisioner:
    """One database file per tenant, all in the template's directory."""

    backend = "sqlite"
    system_database = None

    _SIDECAR_SUFFIXES = ("-journal", "-wal", "-shm")

    async def create_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None:
        path = self._path(template, name)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.touch, exist_ok=False)

    async def drop_database(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate, name: str
    ) -> None:
        path = self._path(template, name)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    async def list_databases(
        self, engine: AsyncEngine | None, template: DatabaseUrlTemplate
    ) -> list[str]:
        directory = self._directory(template)
        return await asyncio.to_thread(self._scan, directory)

    def _scan(self, directory: Path) -> list[str]:
        if not directory.is_dir():
            return []
        return [
            entry.name
            for entry in directory.iterdir()
            if entry.is_file() and not entry.name.endswith(self._SIDECAR_SUFFIXES)
        ]

    @staticmethod
    def _path(template: DatabaseUrlTemplate, name: str) -> Path:
        database = build_async_url(template.url_for_database(name)).database
        if not database:
            raise ConfigurationError("SQLite URL must name a database file")
        return Path(database)

    def _directory(self, template: DatabaseUrlTemplate) -> Path:
        # Any name resolves to a file in the same directory
        return self._path(template, "_").parent


_PROVISIONERS: dict[str, DatabaseProvisioner] = {
    "postgresql": PostgresProvisioner(),
    "mysql": MySQLProvisioner(),
    "sqlite": SQLiteProvisioner(),
}


def get_provisioner(template: DatabaseUrlTemplate) -> DatabaseProvisioner:
    """Get the provisioner for the template's backend.

    Raises:
        ConfigurationError: If the backend cannot provision databases.
    """
    backend = build_async_url(template.url_for_database("_")).get_backend_name()
    provisioner = _PROVISIONERS.get(backend)
    if provisioner is None:
        supported = ", ".join(sorted(_PROVISIONERS))
        raise ConfigurationError(
            f"Database-per-tenant is not supported for '{backend}'. "
            f"Supported: {supported}"
        )
    return provisioner
