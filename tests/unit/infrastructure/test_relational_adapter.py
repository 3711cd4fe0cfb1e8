"""Tests for the SQLAlchemy asyncio adapter.

Registry, tenant-row deletion and SQLite provisioning run against real
SQLite files in ``tmp_path``.
"""

from unittest.mock import create_autospec

import pytest
import pytest_asyncio
from sqlalchemy import ForeignKey, String, insert, select, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tenantdb.domain.exceptions import ConfigurationError, DatabaseConnectionError
from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.domain.value_objects import AdapterName, StrategyConfig, StrategyName
from tenantdb.infrastructure.observability import ConnectionProbe
from tenantdb.infrastructure.relational import (
    RelationalAdapter,
    RelationalClient,
    TenantScoped,
)
from tenantdb.ports.adapters import DatabaseAdapter


class Base(DeclarativeBase):
    pass


class Project(TenantScoped, Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))


class Task(TenantScoped, Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"))
    title: Mapped[str] = mapped_column(String(100))


@pytest.fixture
def mock_connection_probe():
    """Create mock connection probe."""
    return create_autospec(ConnectionProbe, instance=True)


@pytest.fixture
def adapter(mock_connection_probe):
    return RelationalAdapter(pool_size=2, probe=mock_connection_probe)


@pytest_asyncio.fixture
async def shared_engine(adapter, tmp_path):
    """Connected engine for a shared database with tenant tables."""
    engine = await adapter.connect(f"sqlite:///{tmp_path / 'shared.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await adapter.disconnect()


def _config(url: str, strategy: StrategyName) -> StrategyConfig:
    return StrategyConfig(url=url, strategy=strategy, adapter=AdapterName.RELATIONAL)


class TestValidate:
    """Tests for RelationalAdapter.validate."""

    def test_satisfies_protocol(self, adapter):
        assert isinstance(adapter, DatabaseAdapter)

    @pytest.mark.parametrize(
        "url",
        ["postgres://h/app", "mysql://h/app", "sqlite:///./app.db"],
    )
    def test_accepts_supported_row_backends(self, adapter, url):
        adapter.validate(_config(url, StrategyName.ROW))

    @pytest.mark.parametrize(
        "url",
        ["postgres://h/{tenant}", "mysql://h/app_{tenant}", "sqlite:////data/{tenant}.db"],
    )
    def test_accepts_supported_database_backends(self, adapter, url):
        adapter.validate(_config(url, StrategyName.DATABASE))

    def test_rejects_unknown_backend(self, adapter):
        with pytest.raises(ConfigurationError, match="Unsupported relational backend"):
            adapter.validate(_config("oracle://h/app", StrategyName.ROW))

    def test_rejects_database_strategy_without_provisioner(self, adapter):
        with pytest.raises(ConfigurationError, match="not supported for 'mssql'"):
            adapter.validate(_config("mssql://h/{tenant}", StrategyName.DATABASE))


class TestConnect:
    """Tests for connect, ping and close."""

    @pytest.mark.asyncio
    async def test_connect_tracks_engine(self, adapter, tmp_path, mock_connection_probe):
        engine = await adapter.connect(f"sqlite:///{tmp_path / 'a.db'}")

        assert adapter.open_engines == 1
        assert engine.url.drivername == "sqlite+aiosqlite"
        mock_connection_probe.connection_established.assert_called_once()

        await adapter.close(engine)
        assert adapter.open_engines == 0
        mock_connection_probe.connection_closed.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_failure_raises_connection_error(
        self, adapter, tmp_path, mock_connection_probe
    ):
        url = f"sqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}"

        with pytest.raises(DatabaseConnectionError) as exc_info:
            await adapter.connect(url)

        assert exc_info.value.__cause__ is not None
        assert adapter.open_engines == 0
        mock_connection_probe.connection_failed.assert_called_once()

    @pytest.mark.asyncio
    async def test_must_exist_does_not_create_sqlite_file(
        self, adapter, tmp_path, mock_connection_probe
    ):
        path = tmp_path / "ghost.db"

        with pytest.raises(DatabaseConnectionError):
            await adapter.connect(f"sqlite:///{path}", must_exist=True)

        assert not path.exists()
        assert adapter.open_engines == 0
        mock_connection_probe.connection_failed.assert_called_once()

    @pytest.mark.asyncio
    async def test_must_exist_opens_existing_sqlite_file(self, adapter, tmp_path):
        path = tmp_path / "acme.db"
        path.touch()

        engine = await adapter.connect(f"sqlite:///{path}", must_exist=True)
        async with engine.begin() as conn:
            await conn.execute(text("CREATE TABLE t (id INTEGER)"))

        assert adapter.open_engines == 1
        await adapter.close(engine)

    @pytest.mark.asyncio
    async def test_ping(self, adapter, shared_engine):
        await adapter.ping(shared_engine)

    @pytest.mark.asyncio
    async def test_disconnect_disposes_everything(self, adapter, tmp_path):
        await adapter.connect(f"sqlite:///{tmp_path / 'a.db'}")
        await adapter.connect(f"sqlite:///{tmp_path / 'b.db'}")

        await adapter.disconnect()
        await adapter.disconnect()

        assert adapter.open_engines == 0

    @pytest.mark.asyncio
    async def test_bind_client_owns_engine(self, adapter, tmp_path):
        engine = await adapter.connect(f"sqlite:///{tmp_path / 'a.db'}")

        handle = adapter.bind_client(engine, "acme")
        await handle.close()

        assert isinstance(handle, RelationalClient)
        assert handle.is_scoped is False
        assert adapter.open_engines == 0

    @pytest.mark.asyncio
    async def test_install_tenant_filter_shares_engine(self, adapter, shared_engine):
        handle = adapter.install_tenant_filter(shared_engine, "acme")
        await handle.close()

        assert handle.is_scoped is True
        assert adapter.open_engines == 1


class TestTenantRegistry:
    """Tests for the row-strategy tenant registry."""

    @pytest.mark.asyncio
    async def test_register_then_lookup(self, adapter, shared_engine):
        await adapter.register_tenant(shared_engine, "acme")

        assert await adapter.is_registered(shared_engine, "acme") is True
        assert await adapter.is_registered(shared_engine, "globex") is False

    @pytest.mark.asyncio
    async def test_register_is_idempotent(self, adapter, shared_engine):
        await adapter.register_tenant(shared_engine, "acme")
        await adapter.register_tenant(shared_engine, "acme")

        assert await adapter.list_registered(shared_engine) == ["acme"]

    @pytest.mark.asyncio
    async def test_lookup_on_fresh_database(self, adapter, shared_engine):
        assert await adapter.is_registered(shared_engine, "acme") is False
        assert await adapter.list_registered(shared_engine) == []

    @pytest.mark.asyncio
    async def test_delete_tenant_data_removes_rows_and_marker(
        self, adapter, shared_engine, mock_connection_probe
    ):
        for tenant_id in ("acme", "globex"):
            await adapter.register_tenant(shared_engine, tenant_id)
        async with shared_engine.begin() as conn:
            await conn.execute(
                insert(Project.__table__),
                [
                    {"id": 1, "tenant_id": "acme", "name": "p1"},
                    {"id": 2, "tenant_id": "globex", "name": "p2"},
                ],
            )
            await conn.execute(
                insert(Task.__table__),
                [
                    {"id": 1, "tenant_id": "acme", "project_id": 1, "title": "t1"},
                    {"id": 2, "tenant_id": "globex", "project_id": 2, "title": "t2"},
                ],
            )

        await adapter.delete_tenant_data(shared_engine, "acme")

        async with shared_engine.connect() as conn:
            projects = (await conn.execute(select(Project.__table__.c.tenant_id))).scalars()
            tasks = (await conn.execute(select(Task.__table__.c.tenant_id))).scalars()
            assert list(projects) == ["globex"]
            assert list(tasks) == ["globex"]
        assert await adapter.list_registered(shared_engine) == ["globex"]
        mock_connection_probe.tenant_data_deleted.assert_called_once_with(
            "sqlite", "acme", tables=2
        )


class TestSQLiteProvisioning:
    """Tests for database-per-tenant provisioning on SQLite files."""

    @pytest.fixture
    def template(self, tmp_path):
        return DatabaseUrlTemplate.parse(f"sqlite:///{tmp_path}/tenants/{{tenant}}.db")

    @pytest.mark.asyncio
    async def test_create_list_drop(self, adapter, template, tmp_path):
        await adapter.create_database(template, "acme.db")

        assert (tmp_path / "tenants" / "acme.db").is_file()
        assert await adapter.list_databases(template) == ["acme.db"]

        await adapter.drop_database(template, "acme.db")

        assert not (tmp_path / "tenants" / "acme.db").exists()
        assert await adapter.list_databases(template) == []

    @pytest.mark.asyncio
    async def test_list_without_directory_is_empty(self, adapter, template):
        assert await adapter.list_databases(template) == []

    @pytest.mark.asyncio
    async def test_create_existing_database_raises(self, adapter, template):
        await adapter.create_database(template, "acme.db")

        with pytest.raises(FileExistsError):
            await adapter.create_database(template, "acme.db")

    @pytest.mark.asyncio
    async def test_drop_missing_database_is_silent(self, adapter, template):
        await adapter.drop_database(template, "ghost.db")

    @pytest.mark.asyncio
    async def test_journal_files_are_not_databases(self, adapter, template, tmp_path):
        await adapter.create_database(template, "acme.db")
        (tmp_path / "tenants" / "acme.db-journal").touch()

        assert await adapter.list_databases(template) == ["acme.db"]
