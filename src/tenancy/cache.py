"""Tenant configuration cache.

Maps tenant IDs to loaded configuration snapshots. Tenant files live
at ``{config_directory}/{tenant_id}/{config_filename}``; they are
loaded lazily on first use, cached, watched for changes and reloaded
in the background. Any failure falls back to the base configuration,
so resolve() never raises.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tenancy.extractor import DEFAULT_TENANT_ID, sanitize_tenant_id
from tenancy.loader import ConfigLoader, ConfigSnapshot, YamlConfigLoader
from tenancy.locks import ReadWriteLock
from tenancy.watcher import (
    EVENT_DELETED,
    FileChangeEvent,
    WatchHandle,
    WatcherFactory,
    watch_file,
)

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached snapshot for one tenant.

    Attributes:
        tenant_id: Tenant the snapshot belongs to
        snapshot: The loaded configuration
        config_path: File the snapshot was loaded from
        loaded_at: When the entry was installed
    """

    tenant_id: str
    snapshot: ConfigSnapshot
    config_path: Path
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class _Subscription:
    # token identifies the watcher a callback belongs to; generation
    # counts change events so an older reload cannot overwrite a newer one.
    token: object
    handle: WatchHandle
    generation: int = 0


class TenantConfigCache:
    """Resolves tenant IDs to configuration snapshots.

    One instance is created per service and shared by every request
    handler. Both the entry map and the watcher map are guarded by a
    single ReadWriteLock: cache hits and stats() share it, while
    installs, invalidations and shutdown take it exclusively.

    Cold loads run while holding the write lock. This serializes first
    loads for different tenants as well, but guarantees that concurrent
    first requests for one tenant load its file exactly once.

    Example:
        >>> cache = TenantConfigCache(
        ...     base_config=YamlConfigLoader().load("configs/default/config.yaml"),
        ...     config_directory="configs",
        ... )
        >>> snapshot = cache.resolve("tenant1")
        >>> cache.stats()["loaded_tenant_ids"]
        ['tenant1']
        >>> cache.shutdown()
    """

    def __init__(
        self,
        base_config: ConfigSnapshot,
        config_directory: Union[str, Path],
        loader: Optional[ConfigLoader] = None,
        *,
        config_filename: str = "config.yaml",
        default_tenant_id: str = DEFAULT_TENANT_ID,
        watch: bool = True,
        poll_interval: float = 1.0,
        watcher_factory: Optional[WatcherFactory] = None,
        eager_reload: bool = True,
    ):
        """Initialize the cache.

        Args:
            base_config: Snapshot served for the default tenant and as fallback
            config_directory: Directory with one subdirectory per tenant
            loader: Loader for tenant files (default: YamlConfigLoader)
            config_filename: File name inside each tenant directory
            default_tenant_id: Tenant ID that always maps to base_config
            watch: Watch cached tenant files for changes (default: True)
            poll_interval: Poll interval for the default watcher
            watcher_factory: Custom ``(path, callback) -> WatchHandle`` factory
            eager_reload: Reload changed files in the background (default: True)
        """
        self._base_config = base_config
        self._config_directory = Path(config_directory)
        self._loader = loader or YamlConfigLoader()
        self._config_filename = config_filename
        self._default_tenant_id = default_tenant_id
        self._eager_reload = eager_reload

        if not watch:
            self._watcher_factory: Optional[WatcherFactory] = None
        elif watcher_factory is not None:
            self._watcher_factory = watcher_factory
        else:
            self._watcher_factory = partial(watch_file, interval=poll_interval)

        self._lock = ReadWriteLock()
        self._entries: Dict[str, CacheEntry] = {}
        self._watchers: Dict[str, _Subscription] = {}
        self._closed = False

    @property
    def base_config(self) -> ConfigSnapshot:
        return self._base_config

    @property
    def config_directory(self) -> Path:
        return self._config_directory

    @property
    def default_tenant_id(self) -> str:
        return self._default_tenant_id

    def get_tenant_config_path(self, tenant_id: str) -> Path:
        """Path of the configuration file for ``tenant_id``."""
        tenant_id = sanitize_tenant_id(tenant_id, default=self._default_tenant_id)
        return self._config_directory / tenant_id / self._config_filename

    def resolve(self, tenant_id: Optional[str]) -> ConfigSnapshot:
        """Get the configuration snapshot for a tenant.

        The default tenant always gets the base snapshot. Other tenants
        get their cached snapshot, or their file is loaded and cached.
        A missing or broken file yields the base snapshot without
        caching anything, so the next call checks the file again.

        Args:
            tenant_id: Tenant ID (sanitized again here before touching disk)

        Returns:
            The tenant's snapshot, or the base snapshot as fallback
        """
        tenant_id = sanitize_tenant_id(tenant_id, default=self._default_tenant_id)
        if tenant_id == self._default_tenant_id:
            return self._base_config

        with self._lock.read():
            entry = self._entries.get(tenant_id)
            unwatched = (
                entry is not None
                and self._watcher_factory is not None
                and not self._closed
                and tenant_id not in self._watchers
            )
        if entry is not None:
            if unwatched:
                self._rearm_watcher(tenant_id)
            return entry.snapshot

        return self._load(tenant_id)

    def _rearm_watcher(self, tenant_id: str) -> None:
        """Retry arming a watcher for a tenant cached without one."""
        replaced: List[_Subscription] = []
        try:
            with self._lock.write():
                entry = self._entries.get(tenant_id)
                if entry is None or self._closed or tenant_id in self._watchers:
                    return
                replaced.extend(self._attach_watcher(tenant_id, entry.config_path))
        finally:
            for subscription in replaced:
                self._stop_subscription(tenant_id, subscription)

    def _load(self, tenant_id: str) -> ConfigSnapshot:
        replaced: List[_Subscription] = []
        try:
            with self._lock.write():
                # Another thread may have loaded it while we waited
                entry = self._entries.get(tenant_id)
                if entry is not None:
                    return entry.snapshot

                config_path = self.get_tenant_config_path(tenant_id)
                try:
                    exists = config_path.is_file()
                except (OSError, ValueError) as e:
                    # e.g. a tenant ID longer than the file system allows
                    logger.error(
                        "Cannot access tenant config file for '%s' at %s, "
                        "using default configuration: %s",
                        tenant_id,
                        config_path,
                        e,
                    )
                    return self._base_config
                if not exists:
                    logger.debug(
                        "Tenant config file not found for '%s' at %s, "
                        "using default configuration",
                        tenant_id,
                        config_path,
                    )
                    return self._base_config

                # Armed before loading so a write during the load is still
                # reported; its callback waits for this lock, then evicts.
                if not self._closed:
                    replaced.extend(self._attach_watcher(tenant_id, config_path))

                try:
                    snapshot = self._loader.load(config_path)
                except Exception as e:
                    logger.error(
                        "Failed to load tenant configuration for '%s' from %s, "
                        "falling back to default: %s",
                        tenant_id,
                        config_path,
                        e,
                    )
                    subscription = self._watchers.pop(tenant_id, None)
                    if subscription is not None:
                        replaced.append(subscription)
                    return self._base_config

                self._entries[tenant_id] = CacheEntry(
                    tenant_id=tenant_id,
                    snapshot=snapshot,
                    config_path=config_path,
                )

                logger.info(
                    "Loaded tenant configuration for '%s' from %s",
                    tenant_id,
                    config_path,
                )
                return snapshot
        finally:
            # Stopping joins the watcher thread, which may itself be
            # waiting for the write lock.
            for subscription in replaced:
                self._stop_subscription(tenant_id, subscription)

    def _attach_watcher(self, tenant_id: str, config_path: Path) -> List[_Subscription]:
        """Arm a watcher for ``tenant_id``. Caller holds the write lock.

        Returns:
            Previous subscriptions to stop once the lock is released
        """
        replaced = []
        previous = self._watchers.pop(tenant_id, None)
        if previous is not None:
            replaced.append(previous)

        if self._watcher_factory is None:
            return replaced

        token = object()
        callback = partial(self._on_file_change, tenant_id, token)
        try:
            handle = self._watcher_factory(config_path, callback)
        except Exception as e:
            logger.error(
                "Failed to create file watcher for tenant '%s' at %s: %s",
                tenant_id,
                config_path,
                e,
            )
            return replaced

        self._watchers[tenant_id] = _Subscription(token=token, handle=handle)
        logger.info(
            "File watcher attached for tenant '%s' at %s", tenant_id, config_path
        )
        return replaced

    def _on_file_change(
        self, tenant_id: str, token: object, event: FileChangeEvent
    ) -> None:
        """Watcher callback: evict the entry and optionally reload it."""
        with self._lock.write():
            subscription = self._watchers.get(tenant_id)
            if self._closed or subscription is None or subscription.token is not token:
                return

            subscription.generation += 1
            generation = subscription.generation
            self._entries.pop(tenant_id, None)
            logger.info(
                "Tenant configuration for '%s' changed (%s), invalidating cache",
                tenant_id,
                event,
            )

        if not self._eager_reload or event.kind == EVENT_DELETED:
            return

        threading.Thread(
            target=self._reload,
            args=(tenant_id, token, generation),
            name=f"config-reload:{tenant_id}",
            daemon=True,
        ).start()

    def _reload(self, tenant_id: str, token: object, generation: int) -> None:
        config_path = self.get_tenant_config_path(tenant_id)
        try:
            snapshot = self._loader.load(config_path)
        except Exception as e:
            logger.warning(
                "Failed to preload tenant configuration for '%s' after file change: %s",
                tenant_id,
                e,
            )
            return

        with self._lock.write():
            subscription = self._watchers.get(tenant_id)
            if (
                self._closed
                or subscription is None
                or subscription.token is not token
                or subscription.generation != generation
                or tenant_id in self._entries
            ):
                logger.debug("Discarding outdated reload for tenant '%s'", tenant_id)
                return
            self._entries[tenant_id] = CacheEntry(
                tenant_id=tenant_id,
                snapshot=snapshot,
                config_path=config_path,
            )

        logger.info(
            "Preloaded tenant configuration for '%s' after file change", tenant_id
        )

    def invalidate(self, tenant_id: str) -> None:
        """Drop a tenant's cached snapshot and stop its watcher.

        Invalidating a tenant that is not cached is a no-op.
        """
        tenant_id = sanitize_tenant_id(tenant_id, default=self._default_tenant_id)
        with self._lock.write():
            self._entries.pop(tenant_id, None)
            subscription = self._watchers.pop(tenant_id, None)

        if subscription is not None:
            self._stop_subscription(tenant_id, subscription)
        logger.debug("Invalidated tenant configuration cache for '%s'", tenant_id)

    def shutdown(self) -> None:
        """Stop every watcher.

        Cached snapshots stay available so in-flight requests can still
        be served. Watcher callbacks arriving afterwards are ignored.
        """
        with self._lock.write():
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._watchers.items())
            self._watchers.clear()

        for tenant_id, subscription in subscriptions:
            self._stop_subscription(tenant_id, subscription)
        logger.info(
            "Tenant configuration cache shut down (%d watchers stopped)",
            len(subscriptions),
        )

    def _stop_subscription(self, tenant_id: str, subscription: _Subscription) -> None:
        try:
            subscription.handle.stop()
        except Exception:
            logger.exception("Failed to stop file watcher for tenant '%s'", tenant_id)
            return
        logger.debug("Stopped file watcher for tenant '%s'", tenant_id)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with statistics
        """
        with self._lock.read():
            return {
                "loaded_tenants_count": len(self._entries),
                "active_watchers_count": len(self._watchers),
                "loaded_tenant_ids": sorted(self._entries),
                "config_directory": str(self._config_directory),
            }

    def get_entry(self, tenant_id: str) -> Optional[CacheEntry]:
        """Get the cache entry for a tenant without loading it."""
        with self._lock.read():
            return self._entries.get(tenant_id)

    def __enter__(self) -> "TenantConfigCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
