"""Document-store tenant handle."""

from __future__ import annotations

from typing import Awaitable, Callable

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase

from tenantdb.infrastructure.document.collection import TenantScopedCollection

ClientCloser = Callable[[AsyncMongoClient], Awaitable[None]]


class DocumentClient:
    """Tenant-bound handle over a PyMongo async database.

    Scoped handles (row strategy) hand out ``TenantScopedCollection``
    wrappers and do not expose the raw database. Unscoped handles
    (database strategy) own their client and return plain collections.
    """

    def __init__(
        self,
        client: AsyncMongoClient,
        database: AsyncDatabase,
        tenant_id: str,
        *,
        scoped: bool,
        on_close: ClientCloser | None = None,
    ):
        self._client = client
        self._database = database
        self._tenant_id = tenant_id
        self._scoped = scoped
        self._on_close = on_close
        self._closed = False

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def is_scoped(self) -> bool:
        return self._scoped

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def database(self) -> AsyncDatabase:
        """Raw database of an unscoped handle.

        Raises:
            AttributeError: On scoped handles, which only expose collections.
        """
        if self._scoped:
            raise AttributeError(
                "Tenant-scoped handles do not expose the shared database; "
                "use collection() instead"
            )
        return self._database

    def collection(self, name: str) -> TenantScopedCollection | AsyncCollection:
        """Get a collection for this tenant."""
        collection = self._database[name]
        if self._scoped:
            return TenantScopedCollection(collection, self._tenant_id)
        return collection

    def __getitem__(self, name: str) -> TenantScopedCollection | AsyncCollection:
        return self.collection(name)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            await self._on_close(self._client)

    def __repr__(self) -> str:
        return (
            f"DocumentClient(tenant_id={self._tenant_id!r}, "
            f"database={self._database.name!r}, scoped={self._scoped})"
        )
