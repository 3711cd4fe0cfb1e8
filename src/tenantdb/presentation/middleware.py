"""HTTP middleware that binds every request to a tenant database.

Usage:
    db = create_database("postgresql://app@localhost/{tenant}")
    app = FastAPI(lifespan=tenant_database_lifespan(db))
    app.middleware("http")(create_middleware(db))

    @app.get("/invoices")
    async def invoices(handle: Annotated[ClientHandle, Depends(get_tenant_db)]):
        ...

Failures never reach the route handler. They are logged through the probe
and answered with ``{"error": <tag>, "message": <text>}``:

- 400 ``tenant_id_required``: no request source carried a tenant id
- 404 ``tenant_not_found``: the tenant does not exist
- 400 ``tenant_error``: reading the request or the facade raised anything else

Requests that pass are handled with ``tenant_id`` bound to the structlog
context, so log lines emitted by the route carry it.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from tenantdb.application.tenant_database import TenantDatabase
from tenantdb.domain.exceptions import TenantNotFoundError
from tenantdb.infrastructure.logging import bind_tenant
from tenantdb.presentation.observability.tenant_middleware_probe import (
    DefaultTenantMiddlewareProbe,
    TenantMiddlewareProbe,
)
from tenantdb.presentation.resolution import (
    DEFAULT_HEADER_NAME,
    DEFAULT_PARAM_NAME,
    resolve_tenant,
)

CallNext = Callable[[Request], Awaitable[Response]]
TenantMiddleware = Callable[[Request, CallNext], Awaitable[Response]]


def create_middleware(
    database: TenantDatabase,
    *,
    header_name: str = DEFAULT_HEADER_NAME,
    param_name: str = DEFAULT_PARAM_NAME,
    probe: TenantMiddlewareProbe | None = None,
) -> TenantMiddleware:
    """Build the tenant middleware for a facade.

    Args:
        database: Facade the middleware checks tenants against
        header_name: Header carrying the tenant id
        param_name: Query, path and body key carrying the tenant id
        probe: Optional observability probe

    Returns:
        An ``async (request, call_next)`` function for ``app.middleware("http")``
    """
    probe = probe or DefaultTenantMiddlewareProbe()

    async def tenant_middleware(request: Request, call_next: CallNext) -> Response:
        tenant_id: str | None = None
        try:
            context = await resolve_tenant(
                request, header_name=header_name, param_name=param_name
            )
            if context is None:
                probe.tenant_id_missing(path=request.url.path)
                return _error_response(
                    status.HTTP_400_BAD_REQUEST,
                    "tenant_id_required",
                    "Tenant ID is required",
                )

            tenant_id = context.tenant_id
            if not await database.tenant_exists(tenant_id):
                raise TenantNotFoundError(tenant_id)
            handle = await database.for_tenant(tenant_id)
        except TenantNotFoundError as e:
            probe.tenant_not_found(tenant_id=tenant_id, source=context.source)
            return _error_response(
                status.HTTP_404_NOT_FOUND, "tenant_not_found", str(e)
            )
        except Exception as e:
            # Includes body read failures such as a client disconnect
            probe.tenant_resolution_failed(tenant_id=tenant_id, error=e)
            return _error_response(status.HTTP_400_BAD_REQUEST, "tenant_error", str(e))

        request.state.tenant_id = tenant_id
        request.state.db = handle
        request.state.tenant_context = context
        probe.tenant_resolved(tenant_id=tenant_id, source=context.source)

        with bind_tenant(tenant_id):
            return await call_next(request)

    return tenant_middleware


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message},
    )
