"""Tenant configuration settings.

Provides TenantConfig dataclass for configuring tenant extraction,
the on-disk configuration layout and hot-reload behavior.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class TenantConfig:
    """Configuration for tenant-aware configuration resolution.

    Attributes:
        enabled: Whether tenant extraction is enabled (default: True)
        tenant_id_header: Header carrying the tenant ID (default: "X-Tenant-ID")
        default_tenant_id: Tenant ID used when none is resolvable (default: "default")
        config_directory: Directory holding one subdirectory per tenant (default: "configs")
        config_filename: Name of the configuration file inside each tenant directory
        base_config_path: Base configuration file (default: the default tenant's file)
        watch_enabled: Watch cached tenant files for changes (default: True)
        poll_interval_seconds: How often watchers poll the file (default: 1.0)
        eager_reload: Reload a changed file in the background (default: True)
        exclude_paths: Paths to skip in the middleware

    Example:
        >>> config = TenantConfig(
        ...     tenant_id_header="X-Org-ID",
        ...     config_directory="/etc/myservice/tenants",
        ...     poll_interval_seconds=2.0,
        ...     exclude_paths=["/health", "/metrics"],
        ... )
    """

    enabled: bool = True
    tenant_id_header: str = "X-Tenant-ID"
    default_tenant_id: str = "default"

    # On-disk layout: {config_directory}/{tenant_id}/{config_filename}
    config_directory: str = "configs"
    config_filename: str = "config.yaml"
    base_config_path: Optional[str] = None

    # Hot-reload
    watch_enabled: bool = True
    poll_interval_seconds: float = 1.0
    eager_reload: bool = True

    exclude_paths: List[str] = field(
        default_factory=lambda: ["/health", "/metrics", "/docs", "/openapi.json"]
    )

    def __post_init__(self):
        """Validate configuration."""
        if not self.tenant_id_header:
            raise ValueError("tenant_id_header must be a non-empty string")
        if not self.default_tenant_id:
            raise ValueError("default_tenant_id must be a non-empty string")
        if not self.config_filename:
            raise ValueError("config_filename must be a non-empty string")
        if "/" in self.config_filename or "\\" in self.config_filename:
            raise ValueError("config_filename must be a bare file name")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")

    def resolved_base_config_path(self) -> Path:
        """Path of the base configuration file."""
        if self.base_config_path:
            return Path(self.base_config_path)
        return (
            Path(self.config_directory) / self.default_tenant_id / self.config_filename
        )
