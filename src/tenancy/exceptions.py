"""Tenant configuration exceptions.

Provides exception types for configuration loading, file watching
and tenant context errors. None of these escape
``TenantConfigCache.resolve()``; the cache logs them and falls back
to the base configuration.
"""

from pathlib import Path
from typing import Optional, Union


class TenantError(Exception):
    """Base exception for tenant configuration operations."""

    pass


class TenantContextError(TenantError):
    """Raised when a tenant context operation is misused."""

    pass


class ConfigLoadError(TenantError):
    """Raised when a configuration file cannot be loaded.

    Attributes:
        path: The configuration file that failed to load
        reason: Why loading failed
    """

    def __init__(
        self,
        path: Union[str, Path],
        reason: Optional[str] = None,
    ):
        self.path = str(path)
        self.reason = reason or "unknown error"
        super().__init__(f"Failed to load configuration '{self.path}': {self.reason}")


class WatcherError(TenantError):
    """Raised when a file watcher cannot be attached.

    Attributes:
        path: The file that could not be watched
        reason: Why the watcher could not be attached
    """

    def __init__(
        self,
        path: Union[str, Path],
        reason: Optional[str] = None,
    ):
        self.path = str(path)
        self.reason = reason or "unknown error"
        super().__init__(f"Cannot watch '{self.path}': {self.reason}")
