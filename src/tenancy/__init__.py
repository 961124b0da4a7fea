"""Tenant-aware configuration resolution.

Resolves, per request, which configuration snapshot a multi-tenant
service uses. Tenant files are loaded lazily from
``{config_directory}/{tenant_id}/{config_filename}``, cached, and
hot-reloaded when they change; anything missing or broken falls back
to the base configuration.

Usage:
    >>> from tenancy import TenantConfig, TenantConfigPlugin, get_tenant_config
    >>>
    >>> plugin = TenantConfigPlugin(TenantConfig(config_directory="configs"))
    >>> plugin.install(app)
"""

from tenancy.aware import TenantAwareConfig
from tenancy.cache import CacheEntry, TenantConfigCache
from tenancy.config import TenantConfig
from tenancy.context import (
    TENANT_ID_KEY,
    atenant_scope,
    get_current_tenant_id,
    reset_current_tenant_id,
    set_current_tenant_id,
    tenant_scope,
)
from tenancy.dependencies import get_tenant_cache, get_tenant_config, get_tenant_id
from tenancy.exceptions import (
    ConfigLoadError,
    TenantContextError,
    TenantError,
    WatcherError,
)
from tenancy.extractor import DEFAULT_TENANT_ID, TenantExtractor, sanitize_tenant_id
from tenancy.loader import ConfigLoader, ConfigSnapshot, YamlConfigLoader
from tenancy.middleware import TenantMiddleware
from tenancy.plugin import TenantConfigPlugin
from tenancy.watcher import FileChangeEvent, PollingFileWatcher, watch_file

__version__ = "0.1.0"
__all__ = [
    # Core
    "TenantConfigCache",
    "CacheEntry",
    "TenantAwareConfig",
    "TenantConfig",
    # Loading
    "ConfigLoader",
    "ConfigSnapshot",
    "YamlConfigLoader",
    # Extraction & context
    "DEFAULT_TENANT_ID",
    "TENANT_ID_KEY",
    "TenantExtractor",
    "sanitize_tenant_id",
    "get_current_tenant_id",
    "set_current_tenant_id",
    "reset_current_tenant_id",
    "tenant_scope",
    "atenant_scope",
    # Watching
    "FileChangeEvent",
    "PollingFileWatcher",
    "watch_file",
    # FastAPI
    "TenantMiddleware",
    "TenantConfigPlugin",
    "get_tenant_cache",
    "get_tenant_config",
    "get_tenant_id",
    # Exceptions
    "TenantError",
    "TenantContextError",
    "ConfigLoadError",
    "WatcherError",
]
