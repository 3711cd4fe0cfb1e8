"""Unit test fixtures with mocked dependencies."""

from unittest.mock import AsyncMock, MagicMock, create_autospec

import pytest

from tenantdb.application.observability import TenantDatabaseProbe
from tenantdb.application.tenant_database import TenantDatabase
from tenantdb.domain.value_objects import AdapterName, StrategyConfig, StrategyName
from tenantdb.infrastructure.settings import TenantDBSettings
from tenantdb.ports.adapters import DatabaseAdapter


def make_handle(tenant_id: str) -> MagicMock:
    """Create a mock client handle bound to a tenant."""
    handle = MagicMock(name=f"handle-{tenant_id}")
    handle.tenant_id = tenant_id
    handle.close = AsyncMock()
    return handle


@pytest.fixture
def mock_adapter():
    """Create mock database adapter."""
    return create_autospec(DatabaseAdapter, instance=True)


@pytest.fixture
def mock_strategy():
    """Create mock tenancy strategy handing out one handle per call."""
    strategy = MagicMock()
    strategy.name = StrategyName.DATABASE
    strategy.get_connection = AsyncMock(side_effect=make_handle)
    strategy.create_tenant = AsyncMock()
    strategy.delete_tenant = AsyncMock()
    strategy.tenant_exists = AsyncMock(return_value=True)
    strategy.list_tenants = AsyncMock(return_value=[])
    strategy.check_health = AsyncMock()
    strategy.disconnect = AsyncMock()
    return strategy


@pytest.fixture
def mock_probe():
    """Create mock tenant database probe."""
    return create_autospec(TenantDatabaseProbe, instance=True)


@pytest.fixture
def database_config() -> StrategyConfig:
    """Database-per-tenant configuration on PostgreSQL."""
    return StrategyConfig(
        url="postgresql://app@localhost/app_{tenant}",
        strategy=StrategyName.DATABASE,
        adapter=AdapterName.RELATIONAL,
    )


@pytest.fixture
def tenant_database(database_config, mock_adapter, mock_strategy, mock_probe):
    """Create TenantDatabase with mock dependencies."""
    return TenantDatabase(
        config=database_config,
        adapter=mock_adapter,
        strategy=mock_strategy,
        probe=mock_probe,
    )


@pytest.fixture
def test_settings() -> TenantDBSettings:
    """Settings isolated from the environment and any .env file."""
    return TenantDBSettings(_env_file=None, url=None, strategy=None, adapter=None)


@pytest.fixture
def handle_factory():
    """Provide the mock handle factory to tests."""
    return make_handle
