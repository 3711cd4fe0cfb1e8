"""ORM building blocks for row-level tenancy.

Application models opt into tenant filtering by inheriting ``TenantScoped``::

    class Base(DeclarativeBase):
        pass

    class Invoice(TenantScoped, Base):
        __tablename__ = "invoices"
        id: Mapped[int] = mapped_column(primary_key=True)
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, MetaData, String, Table
from sqlalchemy.orm import Mapped, mapped_column

from tenantdb.domain.value_objects import TENANT_FIELD, TENANT_ID_MAX_LENGTH

REGISTRY_TABLE_NAME = "tenantdb_tenants"

registry_metadata = MetaData()

tenant_registry = Table(
    REGISTRY_TABLE_NAME,
    registry_metadata,
    Column(TENANT_FIELD, String(TENANT_ID_MAX_LENGTH), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


class TenantScoped:
    """Mixin for ORM models whose rows belong to exactly one tenant."""

    tenant_id: Mapped[str] = mapped_column(
        String(TENANT_ID_MAX_LENGTH),
        index=True,
        nullable=False,
    )
