"""Configuration loading.

Provides the ConfigSnapshot value type and the ConfigLoader protocol
the cache loads tenant files through. YamlConfigLoader is the default
loader; services with their own schema validation plug in their own.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

import yaml

from tenancy.exceptions import ConfigLoadError

logger = logging.getLogger(__name__)


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True, eq=False)
class ConfigSnapshot:
    """Immutable, fully loaded configuration for one tenant.

    Readers borrow a snapshot; a reload produces a new instance that
    replaces the old one in the cache.

    Attributes:
        values: Read-only configuration mapping
        source: File the snapshot was loaded from (None for in-memory)
        loaded_at: When the snapshot was created

    Example:
        >>> snapshot = ConfigSnapshot.from_mapping({"log": {"level": "info"}})
        >>> snapshot.get("log.level")
        'info'
    """

    values: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    source: Optional[str] = None
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], source: Optional[str] = None
    ) -> "ConfigSnapshot":
        """Build a snapshot from a plain mapping (deep-copied and frozen)."""
        return cls(values=_freeze(data), source=source)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``"selfservice.flows.login.lifespan"``."""
        node: Any = self.values
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def as_dict(self) -> Dict[str, Any]:
        """Return a mutable deep copy of the configuration values."""
        return _thaw(self.values)


@runtime_checkable
class ConfigLoader(Protocol):
    """Loads a configuration file into a snapshot.

    Implementations raise on failure; the cache treats any exception
    as a recoverable load failure.
    """

    def load(self, path: Union[str, Path]) -> ConfigSnapshot:
        """Load ``path`` into a new snapshot."""
        ...


class YamlConfigLoader:
    """Loads YAML configuration files with ``yaml.safe_load``.

    The document must be a mapping; an empty document loads as an
    empty configuration.
    """

    def load(self, path: Union[str, Path]) -> ConfigSnapshot:
        """Load a YAML file.

        Args:
            path: Configuration file path

        Returns:
            ConfigSnapshot for the file

        Raises:
            ConfigLoadError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigLoadError(path, reason=str(e)) from e
        except UnicodeDecodeError as e:
            raise ConfigLoadError(path, reason=f"not valid UTF-8: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigLoadError(path, reason=f"invalid YAML: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigLoadError(
                path,
                reason=f"top-level document must be a mapping, got {type(data).__name__}",
            )

        logger.debug("Loaded configuration from %s (%d keys)", path, len(data))
        return ConfigSnapshot.from_mapping(data, source=str(path))
