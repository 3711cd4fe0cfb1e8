"""Unit tests for the TenantDatabase facade.

Strategy, adapter and probe are mocked; the facade's own job is id
validation, connection caching and lifecycle bookkeeping.
"""

import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenantdb.application.observability import DefaultTenantDatabaseProbe
from tenantdb.application.tenant_database import TenantDatabase
from tenantdb.domain.exceptions import (
    DatabaseConnectionError,
    InvalidTenantIdError,
    TenantAlreadyExistsError,
)
from tenantdb.domain.value_objects import AdapterName, StrategyName


class TestTenantDatabaseInit:
    """Tests for TenantDatabase initialization."""

    def test_exposes_strategy(self, tenant_database, mock_strategy):
        assert tenant_database.strategy is mock_strategy

    def test_starts_without_connections(self, tenant_database):
        assert tenant_database.connection_count == 0
        assert tenant_database.cached_tenants == []

    def test_uses_default_probe_when_not_provided(
        self, database_config, mock_adapter, mock_strategy
    ):
        database = TenantDatabase(database_config, mock_adapter, mock_strategy)
        assert isinstance(database._probe, DefaultTenantDatabaseProbe)


class TestForTenant:
    """Tests for TenantDatabase.for_tenant."""

    @pytest.mark.asyncio
    async def test_different_tenants_get_different_handles(
        self, tenant_database, mock_strategy
    ):
        handle_a = await tenant_database.for_tenant("a")
        handle_b = await tenant_database.for_tenant("b")

        assert handle_a is not handle_b
        assert handle_a.tenant_id == "a"
        assert handle_b.tenant_id == "b"
        assert mock_strategy.get_connection.await_count == 2

    @pytest.mark.asyncio
    async def test_same_tenant_reuses_handle(
        self, tenant_database, mock_strategy, mock_probe
    ):
        first = await tenant_database.for_tenant("acme")
        second = await tenant_database.for_tenant("acme")

        assert first is second
        mock_strategy.get_connection.assert_awaited_once_with("acme")
        mock_probe.tenant_connection_opened.assert_called_once_with(
            tenant_id="acme", strategy="database"
        )
        mock_probe.tenant_connection_reused.assert_called_once_with(tenant_id="acme")

    @pytest.mark.asyncio
    async def test_concurrent_calls_connect_once(self, tenant_database, mock_strategy):
        handles = await asyncio.gather(
            *(tenant_database.for_tenant("acme") for _ in range(20))
        )

        mock_strategy.get_connection.assert_awaited_once_with("acme")
        assert all(handle is handles[0] for handle in handles)
        assert tenant_database.connection_count == 1

    @pytest.mark.asyncio
    async def test_empty_id_raises_without_connecting(
        self, tenant_database, mock_strategy
    ):
        with pytest.raises(InvalidTenantIdError, match="Tenant ID is required"):
            await tenant_database.for_tenant("")

        mock_strategy.get_connection.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_connection_failure_propagates_and_is_not_cached(
        self, tenant_database, mock_strategy, mock_probe
    ):
        error = DatabaseConnectionError("refused")
        mock_strategy.get_connection.side_effect = error

        with pytest.raises(DatabaseConnectionError) as exc_info:
            await tenant_database.for_tenant("acme")

        assert exc_info.value is error
        assert tenant_database.connection_count == 0
        mock_probe.tenant_connection_failed.assert_called_once_with(
            tenant_id="acme", error=error
        )


class TestCreateTenant:
    """Tests for TenantDatabase.create_tenant."""

    @pytest.mark.asyncio
    async def test_delegates_to_strategy(self, tenant_database, mock_strategy, mock_probe):
        await tenant_database.create_tenant("acme")

        mock_strategy.create_tenant.assert_awaited_once_with("acme")
        mock_probe.tenant_created.assert_called_once_with(
            tenant_id="acme", strategy="database"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tenant_id", ["", "bad id!", "a" * 64])
    async def test_invalid_id_raises_before_any_io(
        self, tenant_database, mock_strategy, mock_adapter, tenant_id
    ):
        with pytest.raises(InvalidTenantIdError):
            await tenant_database.create_tenant(tenant_id)

        mock_strategy.create_tenant.assert_not_awaited()
        mock_adapter.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_strategy_errors_propagate_unchanged(
        self, tenant_database, mock_strategy, mock_probe
    ):
        mock_strategy.create_tenant.side_effect = TenantAlreadyExistsError("acme")

        with pytest.raises(TenantAlreadyExistsError):
            await tenant_database.create_tenant("acme")

        mock_probe.tenant_created.assert_not_called()


class TestDeleteTenant:
    """Tests for TenantDatabase.delete_tenant."""

    @pytest.mark.asyncio
    async def test_evicts_and_closes_cached_handle(
        self, tenant_database, mock_strategy, mock_probe
    ):
        handle = await tenant_database.for_tenant("acme")

        await tenant_database.delete_tenant("acme")

        handle.close.assert_awaited_once()
        assert "acme" not in tenant_database.cached_tenants
        mock_strategy.delete_tenant.assert_awaited_once_with("acme")
        mock_probe.tenant_connection_evicted.assert_called_once_with(tenant_id="acme")
        mock_probe.tenant_deleted.assert_called_once_with(
            tenant_id="acme", strategy="database"
        )

    @pytest.mark.asyncio
    async def test_next_access_reconnects(self, tenant_database, mock_strategy):
        first = await tenant_database.for_tenant("acme")
        await tenant_database.delete_tenant("acme")
        second = await tenant_database.for_tenant("acme")

        assert first is not second
        assert mock_strategy.get_connection.await_count == 2

    @pytest.mark.asyncio
    async def test_without_cached_handle(self, tenant_database, mock_strategy, mock_probe):
        await tenant_database.delete_tenant("acme")

        mock_strategy.delete_tenant.assert_awaited_once_with("acme")
        mock_probe.tenant_connection_evicted.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_id_raises_before_any_io(
        self, tenant_database, mock_strategy
    ):
        with pytest.raises(InvalidTenantIdError):
            await tenant_database.delete_tenant("../etc")

        mock_strategy.delete_tenant.assert_not_awaited()


class TestTenantExists:
    """Tests for TenantDatabase.tenant_exists."""

    @pytest.mark.asyncio
    async def test_delegates_to_strategy(self, tenant_database, mock_strategy):
        mock_strategy.tenant_exists.return_value = True

        assert await tenant_database.tenant_exists("acme") is True
        mock_strategy.tenant_exists.assert_awaited_once_with("acme")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tenant_id", ["", "bad id!"])
    async def test_invalid_id_does_not_exist(
        self, tenant_database, mock_strategy, tenant_id
    ):
        assert await tenant_database.tenant_exists(tenant_id) is False
        mock_strategy.tenant_exists.assert_not_awaited()


class TestListTenants:
    """Tests for TenantDatabase.list_tenants."""

    @pytest.mark.asyncio
    async def test_returns_strategy_listing(self, tenant_database, mock_strategy):
        mock_strategy.list_tenants.return_value = ["a", "b"]

        assert await tenant_database.list_tenants() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_predicate_filters(self, tenant_database, mock_strategy):
        mock_strategy.list_tenants.return_value = ["acme", "globex", "acme-eu"]

        tenants = await tenant_database.list_tenants(
            predicate=lambda tenant_id: tenant_id.startswith("acme")
        )

        assert tenants == ["acme", "acme-eu"]

    @pytest.mark.asyncio
    async def test_limit_truncates_after_filtering(self, tenant_database, mock_strategy):
        mock_strategy.list_tenants.return_value = ["x1", "y", "x2", "x3"]

        tenants = await tenant_database.list_tenants(
            predicate=lambda tenant_id: tenant_id.startswith("x"), limit=2
        )

        assert tenants == ["x1", "x2"]


class TestHealth:
    """Tests for TenantDatabase.health."""

    @pytest.mark.asyncio
    async def test_healthy(self, tenant_database):
        await tenant_database.for_tenant("acme")

        status = await tenant_database.health()

        assert status.healthy is True
        assert status.connections == 1
        assert status.strategy is StrategyName.DATABASE
        assert status.adapter is AdapterName.RELATIONAL
        assert status.error is None

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(
        self, tenant_database, mock_strategy, mock_probe
    ):
        error = DatabaseConnectionError("server gone")
        mock_strategy.check_health.side_effect = error

        status = await tenant_database.health()

        assert status.healthy is False
        assert status.error == "server gone"
        mock_probe.health_check_failed.assert_called_once_with(error=error)


class TestDisconnect:
    """Tests for TenantDatabase.disconnect."""

    @pytest.mark.asyncio
    async def test_closes_handles_strategy_and_adapter(
        self, tenant_database, mock_strategy, mock_adapter, mock_probe
    ):
        handle_a = await tenant_database.for_tenant("a")
        handle_b = await tenant_database.for_tenant("b")

        await tenant_database.disconnect()

        handle_a.close.assert_awaited_once()
        handle_b.close.assert_awaited_once()
        mock_strategy.disconnect.assert_awaited_once()
        mock_adapter.disconnect.assert_awaited_once()
        mock_probe.database_disconnected.assert_called_once_with(connection_count=2)
        assert tenant_database.connection_count == 0

    @pytest.mark.asyncio
    async def test_twice_is_safe(self, tenant_database):
        await tenant_database.for_tenant("acme")

        await tenant_database.disconnect()
        await tenant_database.disconnect()

        assert tenant_database.connection_count == 0


class TestShutdownHook:
    """Tests for TenantDatabase.register_shutdown_hook."""

    def test_installs_handlers_once(self, tenant_database, mock_probe):
        loop = MagicMock(spec=asyncio.AbstractEventLoop)

        tenant_database.register_shutdown_hook(loop=loop, signals=[signal.SIGTERM])
        tenant_database.register_shutdown_hook(loop=loop, signals=[signal.SIGTERM])

        loop.add_signal_handler.assert_called_once_with(
            signal.SIGTERM, tenant_database._schedule_disconnect, loop
        )
        mock_probe.shutdown_hook_registered.assert_called_once_with(
            signals=["SIGTERM"]
        )

    @pytest.mark.asyncio
    async def test_signal_schedules_disconnect(self, tenant_database, mock_strategy):
        await tenant_database.for_tenant("acme")

        tenant_database._schedule_disconnect(asyncio.get_running_loop())
        await tenant_database._shutdown_task

        mock_strategy.disconnect.assert_awaited_once()
        assert tenant_database.connection_count == 0

    @pytest.mark.asyncio
    async def test_failed_shutdown_disconnect_is_logged(
        self, tenant_database, mock_strategy, mock_probe
    ):
        error = RuntimeError("boom")
        mock_strategy.disconnect = AsyncMock(side_effect=error)

        tenant_database._schedule_disconnect(asyncio.get_running_loop())
        await tenant_database._shutdown_task

        mock_probe.shutdown_disconnect_failed.assert_called_once_with(error=error)
