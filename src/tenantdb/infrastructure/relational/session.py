"""Tenant-scoped ORM sessions.

Sessions created from a tenant-bound ``RelationalClient`` use
``TenantScopedSession``. Two ORM event hooks confine every ORM statement
to the session's tenant:

- ``do_orm_execute`` adds ``tenant_id = :tenant`` criteria for every
  ``TenantScoped`` entity in SELECT, UPDATE and DELETE statements,
  rejects UPDATEs that assign another tenant_id, and stamps bulk INSERT
  parameters.
- ``before_flush`` stamps new objects and rejects objects that carry, or
  were moved to, another tenant's id.

Raw SQL via ``text()`` and Core statements against ``Table`` objects are
not rewritten.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria
from sqlalchemy.sql.elements import BindParameter

from tenantdb.domain.exceptions import TenantIsolationError
from tenantdb.domain.value_objects import TENANT_FIELD
from tenantdb.infrastructure.relational.models import TenantScoped

TENANT_INFO_KEY = "tenantdb_tenant_id"


class TenantScopedSession(Session):
    """Session whose ORM statements only see one tenant's rows.

    The tenant is read from ``session.info[TENANT_INFO_KEY]``.
    """

    @property
    def tenant_id(self) -> str:
        return self.info[TENANT_INFO_KEY]


@event.listens_for(TenantScopedSession, "do_orm_execute")
def _scope_orm_statement(state: ORMExecuteState) -> None:
    tenant_id = state.session.info[TENANT_INFO_KEY]

    if state.is_insert:
        _stamp_insert_parameters(state, tenant_id)
        return

    if state.is_select and (state.is_column_load or state.is_relationship_load):
        # Lazy loads and refreshes start from rows that were already filtered
        return

    if state.is_update:
        _check_update_values(state, tenant_id)

    if state.is_select or state.is_update or state.is_delete:
        state.statement = state.statement.options(
            with_loader_criteria(
                TenantScoped,
                lambda cls: cls.tenant_id == tenant_id,
                include_aliases=True,
            )
        )


@event.listens_for(TenantScopedSession, "before_flush")
def _stamp_pending_objects(session: Session, flush_context: Any, instances: Any) -> None:
    tenant_id = session.info[TENANT_INFO_KEY]

    for obj in session.new:
        if not isinstance(obj, TenantScoped):
            continue
        if obj.tenant_id is None:
            obj.tenant_id = tenant_id
        elif obj.tenant_id != tenant_id:
            raise TenantIsolationError(expected=tenant_id, actual=obj.tenant_id)

    for obj in session.dirty:
        if isinstance(obj, TenantScoped) and obj.tenant_id != tenant_id:
            raise TenantIsolationError(expected=tenant_id, actual=obj.tenant_id)


def _stamp_insert_parameters(state: ORMExecuteState, tenant_id: str) -> None:
    mapper = state.bind_mapper
    if mapper is None or not issubclass(mapper.class_, TenantScoped):
        return

    parameters = state.parameters
    if isinstance(parameters, dict):
        rows = [parameters]
    elif isinstance(parameters, list):
        rows = parameters
    else:
        return

    for row in rows:
        actual = row.setdefault(TENANT_FIELD, tenant_id)
        if actual != tenant_id:
            raise TenantIsolationError(expected=tenant_id, actual=actual)


def _check_update_values(state: ORMExecuteState, tenant_id: str) -> None:
    mapper = state.bind_mapper
    if mapper is None or not issubclass(mapper.class_, TenantScoped):
        return

    statement = state.statement
    assignments = [
        *(statement._values or {}).items(),
        *(getattr(statement, "_ordered_values", None) or ()),
    ]
    for key, value in assignments:
        if _column_key(key) == TENANT_FIELD:
            _check_assigned(value, tenant_id)

    # Bulk UPDATE by primary key passes one parameter set per row
    parameters = state.parameters
    rows = [parameters] if isinstance(parameters, dict) else parameters or []
    for row in rows:
        if isinstance(row, dict) and TENANT_FIELD in row:
            _check_assigned(row[TENANT_FIELD], tenant_id)


def _column_key(key: Any) -> str | None:
    if isinstance(key, str):
        return key
    return getattr(key, "key", None)


def _check_assigned(value: Any, tenant_id: str) -> None:
    # Only a literal equal to the session tenant keeps rows in place
    actual = value.value if isinstance(value, BindParameter) else value
    if not isinstance(actual, str) or actual != tenant_id:
        raise TenantIsolationError(expected=tenant_id, actual=actual)
