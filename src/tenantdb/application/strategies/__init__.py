"""Tenant isolation strategies."""

from tenantdb.application.strategies.database import DatabaseStrategy, SchemaSetup
from tenantdb.application.strategies.row import RowStrategy

__all__ = ["DatabaseStrategy", "RowStrategy", "SchemaSetup"]
