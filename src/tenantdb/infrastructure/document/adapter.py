"""PyMongo asyncio adapter.

One ``AsyncMongoClient`` per connection URL. The database named in the URL
path is the working database; tenant existence for the row strategy is
tracked in its ``_tenantdb_tenants`` collection.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import ConfigurationError as MongoConfigurationError
from pymongo.errors import InvalidURI, PyMongoError

from tenantdb.domain.exceptions import ConfigurationError, DatabaseConnectionError
from tenantdb.domain.url_template import DatabaseUrlTemplate
from tenantdb.domain.value_objects import TENANT_FIELD, StrategyConfig, StrategyName
from tenantdb.infrastructure.document.client import DocumentClient
from tenantdb.infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

BACKEND = "mongodb"
DEFAULT_DATABASE = "tenantdb"
REGISTRY_COLLECTION = "_tenantdb_tenants"
INIT_COLLECTION = "_tenantdb_init"

_SUPPORTED_SCHEMES = ("mongodb://", "mongodb+srv://")
_SYSTEM_DATABASES = frozenset({"admin", "config", "local"})


class DocumentAdapter:
    """Adapter for MongoDB via PyMongo's asyncio API."""

    def __init__(
        self,
        server_selection_timeout_ms: int = 5000,
        probe: ConnectionProbe | None = None,
    ):
        """Initialize the adapter.

        Args:
            server_selection_timeout_ms: How long connect and ping wait for a server
            probe: Optional observability probe
        """
        self._timeout_ms = server_selection_timeout_ms
        self._probe = probe or DefaultConnectionProbe()
        self._clients: list[AsyncMongoClient] = []
        self._admin_clients: dict[str, AsyncMongoClient] = {}
        self._admin_lock = asyncio.Lock()

    @property
    def open_clients(self) -> int:
        """Number of clients opened by ``connect`` and not yet closed."""
        return len(self._clients)

    def validate(self, config: StrategyConfig) -> None:
        if not config.url.startswith(_SUPPORTED_SCHEMES):
            raise ConfigurationError(
                f"Document adapter requires a mongodb:// or mongodb+srv:// URL, "
                f"got: {config.url.split('://', 1)[0]}://"
            )
        if config.strategy is StrategyName.DATABASE:
            DatabaseUrlTemplate.parse(config.url)

    async def connect(self, url: str, *, must_exist: bool = False) -> AsyncMongoClient:
        client = self._create_client(url)
        database = _default_database(client).name
        try:
            await client.admin.command("ping")
            # MongoDB creates databases on first write, so check up front
            missing = must_exist and database not in await client.list_database_names()
        except PyMongoError as e:
            await client.close()
            self._probe.connection_failed(BACKEND, database, e)
            raise DatabaseConnectionError(f"Failed to connect to MongoDB: {e}") from e

        if missing:
            error = DatabaseConnectionError(f"MongoDB database '{database}' does not exist")
            await client.close()
            self._probe.connection_failed(BACKEND, database, error)
            raise error

        self._clients.append(client)
        self._probe.connection_established(BACKEND, database)
        return client

    async def close(self, client: AsyncMongoClient) -> None:
        tracked = any(existing is client for existing in self._clients)
        self._clients = [existing for existing in self._clients if existing is not client]
        await client.close()
        if tracked:
            self._probe.connection_closed(BACKEND, _default_database(client).name)

    async def ping(self, client: AsyncMongoClient) -> None:
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            raise DatabaseConnectionError(f"MongoDB ping failed: {e}") from e

    def bind_client(self, client: AsyncMongoClient, tenant_id: str) -> DocumentClient:
        return DocumentClient(
            client,
            _default_database(client),
            tenant_id,
            scoped=False,
            on_close=self.close,
        )

    def install_tenant_filter(
        self, client: AsyncMongoClient, tenant_id: str
    ) -> DocumentClient:
        return DocumentClient(client, _default_database(client), tenant_id, scoped=True)

    async def register_tenant(self, client: AsyncMongoClient, tenant_id: str) -> None:
        registry = _default_database(client)[REGISTRY_COLLECTION]
        await registry.update_one(
            {"_id": tenant_id},
            {"$setOnInsert": {"created_at": datetime.now(UTC)}},
            upsert=True,
        )

    async def is_registered(self, client: AsyncMongoClient, tenant_id: str) -> bool:
        registry = _default_database(client)[REGISTRY_COLLECTION]
        return await registry.count_documents({"_id": tenant_id}, limit=1) > 0

    async def list_registered(self, client: AsyncMongoClient) -> list[str]:
        registry = _default_database(client)[REGISTRY_COLLECTION]
        return [document["_id"] async for document in registry.find({}, {"_id": 1})]

    async def delete_tenant_data(self, client: AsyncMongoClient, tenant_id: str) -> None:
        database = _default_database(client)
        names = [
            name
            for name in await database.list_collection_names()
            if name != REGISTRY_COLLECTION and not name.startswith("system.")
        ]
        for name in names:
            await database[name].delete_many({TENANT_FIELD: tenant_id})
        await database[REGISTRY_COLLECTION].delete_one({"_id": tenant_id})

        self._probe.tenant_data_deleted(BACKEND, tenant_id, tables=len(names))

    async def create_database(
        self, template: DatabaseUrlTemplate, database_name: str
    ) -> None:
        # MongoDB creates a database with its first collection
        client = await self._admin_client(template)
        await client[database_name].create_collection(INIT_COLLECTION)
        self._probe.database_provisioned(BACKEND, database_name)

    async def drop_database(
        self, template: DatabaseUrlTemplate, database_name: str
    ) -> None:
        client = await self._admin_client(template)
        await client.drop_database(database_name)
        self._probe.database_dropped(BACKEND, database_name)

    async def list_databases(self, template: DatabaseUrlTemplate) -> list[str]:
        client = await self._admin_client(template)
        try:
            names = await client.list_database_names()
        except PyMongoError as e:
            raise DatabaseConnectionError(f"Failed to list databases: {e}") from e
        return [name for name in names if name not in _SYSTEM_DATABASES]

    async def disconnect(self) -> None:
        clients, self._clients = self._clients, []
        async with self._admin_lock:
            admin_clients = list(self._admin_clients.values())
            self._admin_clients.clear()

        for client in [*clients, *admin_clients]:
            await client.close()
            self._probe.connection_closed(BACKEND, _default_database(client).name)

    async def _admin_client(self, template: DatabaseUrlTemplate) -> AsyncMongoClient:
        """Get the cached server-level client for the template's deployment."""
        key = template.url_for_database("admin")
        async with self._admin_lock:
            client = self._admin_clients.get(key)
            if client is None:
                client = self._create_client(key)
                try:
                    await client.admin.command("ping")
                except PyMongoError as e:
                    await client.close()
                    self._probe.connection_failed(BACKEND, "admin", e)
                    raise DatabaseConnectionError(
                        f"Failed to connect to MongoDB server: {e}"
                    ) from e
                self._admin_clients[key] = client
        return client

    def _create_client(self, url: str) -> AsyncMongoClient:
        try:
            return AsyncMongoClient(
                url, serverSelectionTimeoutMS=self._timeout_ms, tz_aware=True
            )
        except (InvalidURI, MongoConfigurationError) as e:
            raise ConfigurationError(f"Invalid MongoDB URL: {e}") from e


def _default_database(client: AsyncMongoClient) -> AsyncDatabase:
    return client.get_default_database(default=DEFAULT_DATABASE)
