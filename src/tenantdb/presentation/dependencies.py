"""FastAPI dependencies for tenant-bound routes.

Both read what ``create_middleware`` attached to ``request.state``.

Usage in FastAPI routes:
    @router.get("/example")
    async def example(
        tenant: Annotated[TenantContext, Depends(get_tenant_context)],
        handle: Annotated[ClientHandle, Depends(get_tenant_db)],
    ):
        ...
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from tenantdb.ports.adapters import ClientHandle
from tenantdb.presentation.tenant_context import TenantContext

_MIDDLEWARE_MISSING = "Tenant middleware is not installed for this route"


def get_tenant_context(request: Request) -> TenantContext:
    """Get the tenant context resolved by the middleware.

    Raises:
        HTTPException 500: If the tenant middleware did not run.
    """
    context = getattr(request.state, "tenant_context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_MIDDLEWARE_MISSING,
        )
    return context


def get_tenant_db(request: Request) -> ClientHandle:
    """Get the tenant's database handle attached by the middleware.

    Raises:
        HTTPException 500: If the tenant middleware did not run.
    """
    handle = getattr(request.state, "db", None)
    if handle is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_MIDDLEWARE_MISSING,
        )
    return handle
