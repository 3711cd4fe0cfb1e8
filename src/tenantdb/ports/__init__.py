"""Ports: protocols the application layer depends on."""

from tenantdb.ports.adapters import ClientHandle, DatabaseAdapter
from tenantdb.ports.strategies import TenancyStrategy

__all__ = ["ClientHandle", "DatabaseAdapter", "TenancyStrategy"]
