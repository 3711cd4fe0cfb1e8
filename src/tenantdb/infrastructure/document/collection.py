"""Tenant-scoped view of a PyMongo async collection.

Every filter passed through ``TenantScopedCollection`` gets an equality
condition on ``tenant_id``; every inserted or replacement document is
stamped with it; aggregation pipelines start with a ``$match`` stage.
A filter, document or update that names a different tenant, or would
remove or rename the tag, raises ``TenantIsolationError`` instead of
silently matching nothing.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.command_cursor import AsyncCommandCursor
from pymongo.asynchronous.cursor import AsyncCursor
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from tenantdb.domain.exceptions import TenantIsolationError
from tenantdb.domain.value_objects import TENANT_FIELD

_TENANT_WRITING_OPERATORS = ("$set", "$setOnInsert")


class TenantScopedCollection:
    """Collection wrapper that confines reads and writes to one tenant."""

    def __init__(self, collection: AsyncCollection, tenant_id: str):
        self._collection = collection
        self._tenant_id = tenant_id

    @property
    def name(self) -> str:
        return self._collection.name

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    # Reads

    def find(self, filter: Mapping[str, Any] | None = None, *args: Any, **kwargs: Any) -> AsyncCursor:
        return self._collection.find(self._scope(filter), *args, **kwargs)

    async def find_one(
        self, filter: Mapping[str, Any] | None = None, *args: Any, **kwargs: Any
    ) -> dict[str, Any] | None:
        return await self._collection.find_one(self._scope(filter), *args, **kwargs)

    async def count_documents(
        self, filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> int:
        return await self._collection.count_documents(self._scope(filter), **kwargs)

    async def distinct(
        self, key: str, filter: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> list[Any]:
        return await self._collection.distinct(key, self._scope(filter), **kwargs)

    async def aggregate(
        self, pipeline: Iterable[Mapping[str, Any]], **kwargs: Any
    ) -> AsyncCommandCursor:
        scoped = [{"$match": {TENANT_FIELD: self._tenant_id}}, *pipeline]
        return await self._collection.aggregate(scoped, **kwargs)

    # Writes

    async def insert_one(self, document: dict[str, Any], **kwargs: Any) -> InsertOneResult:
        return await self._collection.insert_one(self._stamp(document), **kwargs)

    async def insert_many(
        self, documents: Iterable[dict[str, Any]], **kwargs: Any
    ) -> InsertManyResult:
        stamped = [self._stamp(document) for document in documents]
        return await self._collection.insert_many(stamped, **kwargs)

    async def replace_one(
        self,
        filter: Mapping[str, Any],
        replacement: dict[str, Any],
        **kwargs: Any,
    ) -> UpdateResult:
        return await self._collection.replace_one(
            self._scope(filter), self._stamp(replacement), **kwargs
        )

    async def update_one(
        self, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> UpdateResult:
        self._check_update(update)
        return await self._collection.update_one(self._scope(filter), update, **kwargs)

    async def update_many(
        self, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> UpdateResult:
        self._check_update(update)
        return await self._collection.update_many(self._scope(filter), update, **kwargs)

    async def delete_one(self, filter: Mapping[str, Any], **kwargs: Any) -> DeleteResult:
        return await self._collection.delete_one(self._scope(filter), **kwargs)

    async def delete_many(self, filter: Mapping[str, Any], **kwargs: Any) -> DeleteResult:
        return await self._collection.delete_many(self._scope(filter), **kwargs)

    async def find_one_and_update(
        self, filter: Mapping[str, Any], update: Any, **kwargs: Any
    ) -> dict[str, Any] | None:
        self._check_update(update)
        return await self._collection.find_one_and_update(
            self._scope(filter), update, **kwargs
        )

    async def find_one_and_replace(
        self, filter: Mapping[str, Any], replacement: dict[str, Any], **kwargs: Any
    ) -> dict[str, Any] | None:
        return await self._collection.find_one_and_replace(
            self._scope(filter), self._stamp(replacement), **kwargs
        )

    async def find_one_and_delete(
        self, filter: Mapping[str, Any], **kwargs: Any
    ) -> dict[str, Any] | None:
        return await self._collection.find_one_and_delete(self._scope(filter), **kwargs)

    def _scope(self, filter: Mapping[str, Any] | None) -> dict[str, Any]:
        scoped = dict(filter or {})
        self._check(scoped.get(TENANT_FIELD, self._tenant_id))
        scoped[TENANT_FIELD] = self._tenant_id
        return scoped

    def _stamp(self, document: dict[str, Any]) -> dict[str, Any]:
        # In place, like PyMongo's own _id assignment
        self._check(document.setdefault(TENANT_FIELD, self._tenant_id))
        return document

    def _check_update(self, update: Any) -> None:
        if isinstance(update, Mapping):
            self._check_update_document(update)
        else:
            for stage in update:
                self._check_pipeline_stage(stage)

    def _check_update_document(self, update: Mapping[str, Any]) -> None:
        for operator, fields in update.items():
            if not isinstance(fields, Mapping):
                continue
            if operator in _TENANT_WRITING_OPERATORS:
                if TENANT_FIELD in fields:
                    self._check(fields[TENANT_FIELD])
            elif operator == "$rename":
                if TENANT_FIELD in fields or TENANT_FIELD in fields.values():
                    self._check(None)
            elif TENANT_FIELD in fields:
                # $unset, $inc, $push and friends all drop or corrupt the tag
                self._check(None)

    def _check_pipeline_stage(self, stage: Mapping[str, Any]) -> None:
        for name, body in stage.items():
            if name in ("$set", "$addFields"):
                if isinstance(body, Mapping) and TENANT_FIELD in body:
                    self._check(body[TENANT_FIELD])
            elif name == "$unset":
                fields = [body] if isinstance(body, str) else list(body)
                if TENANT_FIELD in fields:
                    self._check(None)
            elif name == "$project":
                self._check_projection(body)
            elif name in ("$replaceRoot", "$replaceWith"):
                # The new document cannot be checked before the server builds it
                self._check(None)

    def _check_projection(self, projection: Mapping[str, Any]) -> None:
        if TENANT_FIELD in projection:
            value = projection[TENANT_FIELD]
            if value == 1 or value in (self._tenant_id, f"${TENANT_FIELD}"):
                return
            self._check(value if isinstance(value, str) else None)
            return
        inclusion = any(
            value not in (0, False) for key, value in projection.items() if key != "_id"
        )
        if inclusion:
            # An inclusion projection drops every field it does not name
            self._check(None)

    def _check(self, actual: Any) -> None:
        if actual != self._tenant_id:
            raise TenantIsolationError(expected=self._tenant_id, actual=actual)

    def __repr__(self) -> str:
        return f"TenantScopedCollection(name={self.name!r}, tenant_id={self._tenant_id!r})"
