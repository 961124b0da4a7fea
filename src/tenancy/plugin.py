"""TenantConfigPlugin - wires tenant configuration into a FastAPI app.

Builds the TenantConfigCache from a TenantConfig, installs the tenant
middleware and stops the cache's watchers when the app shuts down.

Note: Do NOT use ``from __future__ import annotations`` in this module.
FastAPI inspects parameter annotations at runtime to recognize special types.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from tenancy.cache import TenantConfigCache
from tenancy.config import TenantConfig
from tenancy.dependencies import STATE_ATTR
from tenancy.loader import ConfigLoader, YamlConfigLoader
from tenancy.middleware import TenantMiddleware

logger = logging.getLogger(__name__)


class TenantConfigPlugin:
    """Tenant-aware configuration for a FastAPI application.

    Example:
        >>> plugin = TenantConfigPlugin(TenantConfig(config_directory="configs"))
        >>> app = FastAPI()
        >>> plugin.install(app)
        >>>
        >>> @app.get("/settings")
        ... async def settings(config=Depends(get_tenant_config)):
        ...     return config.as_dict()
    """

    def __init__(
        self,
        config: Optional[TenantConfig] = None,
        loader: Optional[ConfigLoader] = None,
    ):
        """Initialize plugin.

        Args:
            config: Tenant configuration (default: TenantConfig())
            loader: Loader for base and tenant files (default: YamlConfigLoader)
        """
        self.config = config or TenantConfig()
        self.loader = loader or YamlConfigLoader()
        self._cache: Optional[TenantConfigCache] = None

    @property
    def name(self) -> str:
        """Plugin name."""
        return "tenant_config"

    @property
    def cache(self) -> TenantConfigCache:
        """The plugin's cache, built on first access."""
        if self._cache is None:
            self._cache = self.build_cache()
        return self._cache

    def build_cache(self) -> TenantConfigCache:
        """Load the base configuration and create the cache.

        Raises:
            ConfigLoadError: If the base configuration cannot be loaded
        """
        base_path = self.config.resolved_base_config_path()
        base_config = self.loader.load(base_path)
        logger.info("Loaded base configuration from %s", base_path)

        return TenantConfigCache(
            base_config=base_config,
            config_directory=self.config.config_directory,
            loader=self.loader,
            config_filename=self.config.config_filename,
            default_tenant_id=self.config.default_tenant_id,
            watch=self.config.watch_enabled,
            poll_interval=self.config.poll_interval_seconds,
            eager_reload=self.config.eager_reload,
        )

    def install(self, app: Any) -> None:
        """Install the cache, middleware and shutdown hook on ``app``."""
        cache = self.cache
        setattr(app.state, STATE_ATTR, cache)
        app.add_middleware(TenantMiddleware, config=self.config)
        app.router.add_event_handler("shutdown", cache.shutdown)
        logger.info(
            "Tenant configuration installed (directory=%s, header=%s)",
            self.config.config_directory,
            self.config.tenant_id_header,
        )

    @asynccontextmanager
    async def lifespan(self, app: Any):
        """Lifespan handler for apps created with ``FastAPI(lifespan=...)``.

        Usage:
            plugin = TenantConfigPlugin(config)
            app = FastAPI(lifespan=plugin.lifespan)
            app.add_middleware(TenantMiddleware, config=plugin.config)
        """
        setattr(app.state, STATE_ATTR, self.cache)
        try:
            yield
        finally:
            self.cache.shutdown()
