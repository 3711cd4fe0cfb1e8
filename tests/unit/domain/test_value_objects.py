"""Unit tests for tenantdb domain value objects."""

import pytest

from tenantdb.domain.exceptions import InvalidTenantIdError, TenantDBError
from tenantdb.domain.value_objects import (
    TENANT_ID_MAX_LENGTH,
    AdapterName,
    HealthStatus,
    StrategyName,
    TenantId,
)


class TestTenantId:
    """Tests for TenantId value object."""

    @pytest.mark.parametrize("value", ["acme", "Acme-Corp", "tenant_42", "a", "0"])
    def test_accepts_valid_ids(self, value):
        assert TenantId.from_string(value).value == value
        assert TenantId.is_valid(value) is True

    @pytest.mark.parametrize("value", ["bad id!", "a.b", "a/b", "tenant;drop", "é"])
    def test_rejects_malformed_ids(self, value):
        with pytest.raises(InvalidTenantIdError, match="alphanumeric") as exc_info:
            TenantId.from_string(value)
        assert exc_info.value.tenant_id == value
        assert TenantId.is_valid(value) is False

    @pytest.mark.parametrize("value", ["", None])
    def test_rejects_empty_ids(self, value):
        with pytest.raises(InvalidTenantIdError, match="Tenant ID is required"):
            TenantId.from_string(value)
        assert TenantId.is_valid(value) is False

    def test_accepts_max_length(self):
        value = "a" * TENANT_ID_MAX_LENGTH
        assert TenantId.from_string(value).value == value

    def test_rejects_over_max_length(self):
        value = "a" * (TENANT_ID_MAX_LENGTH + 1)
        with pytest.raises(InvalidTenantIdError, match="at most 63"):
            TenantId.from_string(value)
        assert TenantId.is_valid(value) is False

    def test_str_returns_value(self):
        assert str(TenantId.from_string("acme")) == "acme"

    def test_is_immutable(self):
        tenant_id = TenantId.from_string("acme")
        with pytest.raises(AttributeError):
            tenant_id.value = "other"  # type: ignore[misc]

    def test_error_is_tenantdb_error(self):
        with pytest.raises(TenantDBError):
            TenantId.from_string("")


class TestEnums:
    """Tests for strategy and adapter names."""

    def test_strategy_values(self):
        assert StrategyName("row") is StrategyName.ROW
        assert StrategyName("database") is StrategyName.DATABASE

    def test_adapter_values(self):
        assert AdapterName("relational") is AdapterName.RELATIONAL
        assert AdapterName("document") is AdapterName.DOCUMENT

    def test_names_compare_as_strings(self):
        assert StrategyName.ROW == "row"


class TestHealthStatus:
    """Tests for HealthStatus."""

    def test_error_defaults_to_none(self):
        status = HealthStatus(
            healthy=True,
            connections=0,
            strategy=StrategyName.ROW,
            adapter=AdapterName.RELATIONAL,
        )
        assert status.error is None
