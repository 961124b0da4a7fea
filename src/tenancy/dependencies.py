"""FastAPI dependencies for tenant configuration.

Note: Do NOT use `from __future__ import annotations` in this module.
FastAPI inspects parameter annotations at runtime to recognize special types
like Request.
"""

import logging

from fastapi import HTTPException, Request
from tenancy.cache import TenantConfigCache
from tenancy.context import get_current_tenant_id
from tenancy.loader import ConfigSnapshot

logger = logging.getLogger(__name__)

STATE_ATTR = "tenant_configs"


def get_tenant_cache(request: Request) -> TenantConfigCache:
    """Get the TenantConfigCache installed on the application."""
    cache = getattr(request.app.state, STATE_ATTR, None)
    if cache is None:
        logger.error("No TenantConfigCache installed on app.state.%s", STATE_ATTR)
        raise HTTPException(status_code=500, detail="Tenant configuration unavailable")
    return cache


def get_tenant_id(request: Request) -> str:
    """Get the tenant ID set by TenantMiddleware.

    Usage:
        @app.get("/whoami")
        async def whoami(tenant_id: str = Depends(get_tenant_id)):
            return {"tenant_id": tenant_id}
    """
    tenant_id = getattr(request.state, "tenant_id", None)
    if tenant_id:
        return tenant_id
    cache = getattr(request.app.state, STATE_ATTR, None)
    if cache is not None:
        return get_current_tenant_id(default=cache.default_tenant_id)
    return get_current_tenant_id()


def get_tenant_config(request: Request) -> ConfigSnapshot:
    """Get the configuration snapshot for the request's tenant.

    Usage:
        @app.get("/settings")
        async def settings(config: ConfigSnapshot = Depends(get_tenant_config)):
            return {"login_lifespan": config.get("selfservice.flows.login.lifespan")}
    """
    cache = get_tenant_cache(request)
    return cache.resolve(get_tenant_id(request))
