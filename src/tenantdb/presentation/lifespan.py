"""FastAPI lifespan integration."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from tenantdb.application.tenant_database import TenantDatabase


def tenant_database_lifespan(
    database: TenantDatabase,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build a lifespan that disconnects the facade on shutdown.

    Usage:
        db = create_database()
        app = FastAPI(lifespan=tenant_database_lifespan(db))
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            # Shutdown: close every tenant connection
            await database.disconnect()

    return lifespan
