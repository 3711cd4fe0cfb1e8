"""Relational tenant handle.

A ``RelationalClient`` pairs an ``AsyncEngine`` with a tenant id and hands
out ``AsyncSession`` objects. Row-strategy handles share the engine and
produce ``TenantScopedSession`` sessions; database-strategy handles own a
dedicated engine and produce plain sessions.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

from tenantdb.infrastructure.relational.session import (
    TENANT_INFO_KEY,
    TenantScopedSession,
)

EngineCloser = Callable[[AsyncEngine], Awaitable[None]]


class RelationalClient:
    """Tenant-bound handle over an async SQLAlchemy engine.

    Usage:
        handle = await db.for_tenant("acme")
        async with handle.session() as session:
            result = await session.execute(select(Invoice))
    """

    def __init__(
        self,
        engine: AsyncEngine,
        tenant_id: str,
        *,
        scoped: bool,
        on_close: EngineCloser | None = None,
    ):
        """Initialize the handle.

        Args:
            engine: Engine the sessions bind to
            tenant_id: Tenant this handle serves
            scoped: Filter ORM statements by tenant_id
            on_close: Disposes the engine when this handle owns it
        """
        self._engine = engine
        self._tenant_id = tenant_id
        self._scoped = scoped
        self._on_close = on_close
        self._closed = False

        if scoped:
            self._sessionmaker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                sync_session_class=TenantScopedSession,
                expire_on_commit=False,
                info={TENANT_INFO_KEY: tenant_id},
            )
        else:
            self._sessionmaker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                sync_session_class=Session,
                expire_on_commit=False,
            )

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def engine(self) -> AsyncEngine:
        """Underlying engine. Statements issued on it are never tenant-filtered."""
        return self._engine

    @property
    def is_scoped(self) -> bool:
        return self._scoped

    @property
    def closed(self) -> bool:
        return self._closed

    def session(self) -> AsyncSession:
        """Create a new session for this tenant."""
        return self._sessionmaker()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            await self._on_close(self._engine)

    def __repr__(self) -> str:
        return (
            f"RelationalClient(tenant_id={self._tenant_id!r}, "
            f"scoped={self._scoped}, closed={self._closed})"
        )


def create_all_schema(metadata: MetaData) -> Callable[[RelationalClient], Awaitable[None]]:
    """Build a schema setup hook that creates every table in ``metadata``.

    Usage:
        db = create_database(
            "postgresql://app@localhost/{tenant}",
            schema_setup=create_all_schema(Base.metadata),
        )
    """

    async def setup(handle: RelationalClient) -> None:
        async with handle.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    return setup
