"""Tenant-aware configuration access.

TenantAwareConfig resolves configuration for whichever tenant is
active in the current context, so code deep in a request does not
need the tenant ID passed down explicitly.
"""

from typing import Any, Optional

from tenancy.cache import TenantConfigCache
from tenancy.context import get_current_tenant_id
from tenancy.loader import ConfigSnapshot


class TenantAwareConfig:
    """Configuration facade bound to the current tenant context.

    Example:
        >>> config = TenantAwareConfig(cache)
        >>> with tenant_scope("tenant1"):
        ...     lifespan = config.get("selfservice.flows.login.lifespan")
    """

    def __init__(self, cache: TenantConfigCache):
        self._cache = cache

    @property
    def tenant_manager(self) -> TenantConfigCache:
        return self._cache

    def provider(self, tenant_id: Optional[str] = None) -> ConfigSnapshot:
        """Snapshot for ``tenant_id``, or for the context tenant if omitted."""
        if tenant_id is None:
            tenant_id = get_current_tenant_id(default=self._cache.default_tenant_id)
        return self._cache.resolve(tenant_id)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key in the context tenant's configuration."""
        return self.provider().get(key, default)
