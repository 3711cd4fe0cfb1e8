"""Tenant id resolution from an incoming request.

Sources are tried in a fixed order and the first non-empty value wins:

1. request header (``x-tenant-id``)
2. query parameter (``tenant_id``)
3. path parameter (``tenant_id``), matched against the app's routes
4. ``request.state.tenant`` (``.id`` or ``["id"]``)
5. ``request.state.user`` or ``scope["user"]`` (``.tenant_id`` or ``["tenant_id"]``)
6. JSON body field (``tenant_id``)

Middleware runs before routing, so path parameters are not yet on the
request and are recovered by matching the routes directly.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from starlette.requests import Request
from starlette.routing import Match

from tenantdb.presentation.tenant_context import TenantContext

DEFAULT_HEADER_NAME = "x-tenant-id"
DEFAULT_PARAM_NAME = "tenant_id"

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


async def resolve_tenant(
    request: Request,
    header_name: str = DEFAULT_HEADER_NAME,
    param_name: str = DEFAULT_PARAM_NAME,
) -> TenantContext | None:
    """Find the tenant a request belongs to.

    Args:
        request: Incoming request
        header_name: Header carrying the tenant id
        param_name: Query, path and body key carrying the tenant id

    Returns:
        The resolved context, or None when no source carries a tenant id
    """
    candidates = (
        ("header", lambda: request.headers.get(header_name)),
        ("query", lambda: request.query_params.get(param_name)),
        ("path", lambda: _path_param(request, param_name)),
        ("tenant", lambda: _field(getattr(request.state, "tenant", None), "id")),
        ("user", lambda: _field(_user(request), param_name)),
    )
    for source, extract in candidates:
        value = _normalize(extract())
        if value is not None:
            return TenantContext(tenant_id=value, source=source)

    value = _normalize(await _body_param(request, param_name))
    if value is not None:
        return TenantContext(tenant_id=value, source="body")
    return None


def _path_param(request: Request, param_name: str) -> Any:
    app = request.scope.get("app")
    router = getattr(app, "router", None)
    if router is None:
        return None

    for route in router.routes:
        match, child_scope = route.matches(request.scope)
        if match == Match.FULL:
            return child_scope.get("path_params", {}).get(param_name)
    return None


def _user(request: Request) -> Any:
    user = getattr(request.state, "user", None)
    if user is None:
        user = request.scope.get("user")
    return user


async def _body_param(request: Request, param_name: str) -> Any:
    if request.method not in _BODY_METHODS:
        return None
    if not request.headers.get("content-type", "").startswith("application/json"):
        return None

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        # Malformed bodies are the handler's problem, not a tenant source
        return None
    return body.get(param_name) if isinstance(body, dict) else None


def _field(source: Any, key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _normalize(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None
