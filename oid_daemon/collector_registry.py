"""
Collector registry.

Built-in collectors register themselves with ``@register_collector`` when the
``collectors`` package is imported. At startup the daemon takes a copy of
that table and merges an optional override file into it::

    # oid_daemon-overload.yaml
    replace: false
    collectors:
      gather_meminfo_data:
        interval: 10
      gather_filesum_data:
        enabled: false
      gather_ntp_data:
        interval: 60
        target: "site_collectors.ntp:gather_ntp_data"

Overrides reference collectors by import path, nothing is sourced or exec'd
from the override file itself.
"""

import importlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from dynaconf import Dynaconf

from oid_daemon.errors import ConfigurationError
from oid_daemon.types import CollectorFunc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectorSpec:
    name: str
    interval: int
    func: CollectorFunc


class CollectorRegistry:
    """Ordered table of collectors: name -> (interval, callable)."""

    def __init__(self) -> None:
        self._collectors: Dict[str, CollectorSpec] = {}

    def __len__(self) -> int:
        return len(self._collectors)

    def __contains__(self, name: object) -> bool:
        return name in self._collectors

    def register(self, name: str, interval: int, func: CollectorFunc) -> None:
        """Register a collector, replacing any collector with the same name.

        Args:
            name: Collector name, used in logs
            interval: Refresh interval in seconds
            func: Argument-less callable returning a CollectorBatch
        """
        if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
            raise ConfigurationError(
                f"collector '{name}': interval must be a positive integer, got {interval!r}"
            )
        if name in self._collectors:
            logger.warning(f"Collector '{name}' already registered, replacing")
        self._collectors[name] = CollectorSpec(name, interval, func)
        logger.debug(f"Registered collector: {name} (every {interval} seconds)")

    def unregister(self, name: str) -> None:
        if self._collectors.pop(name, None) is not None:
            logger.debug(f"Unregistered collector: {name}")

    def get(self, name: str) -> Optional[CollectorSpec]:
        return self._collectors.get(name)

    def list_collectors(self) -> List[str]:
        """Return registered collector names in registration order."""
        return list(self._collectors.keys())

    def specs(self) -> List[CollectorSpec]:
        return list(self._collectors.values())

    def copy(self) -> "CollectorRegistry":
        clone = CollectorRegistry()
        clone._collectors = dict(self._collectors)
        return clone

    def clear(self) -> None:
        self._collectors.clear()


# Global registry of built-in collectors
_registry = CollectorRegistry()


def register_collector(name: str, interval: int) -> Callable[[CollectorFunc], CollectorFunc]:
    """Decorator to register a built-in collector.

    Usage:
        @register_collector("gather_meminfo_data", interval=30)
        def gather_meminfo_data() -> CollectorBatch:
            ...
    """

    def decorator(func: CollectorFunc) -> CollectorFunc:
        _registry.register(name, interval, func)
        return func

    return decorator


def get_registry() -> CollectorRegistry:
    """Get the global registry of built-in collectors."""
    return _registry


def resolve_target(target: str) -> CollectorFunc:
    """Import a collector given as ``"package.module:function"``."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"invalid collector target '{target}', expected 'module:function'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"cannot import collector module '{module_name}': {e}") from e
    func = getattr(module, attr, None)
    if not callable(func):
        raise ConfigurationError(f"collector target '{target}' is not callable")
    return func


def apply_overrides(
    registry: CollectorRegistry, overrides: Dict[str, Any], replace: bool = False
) -> None:
    """Merge an override table into registry.

    Each value is either an interval or a mapping with optional ``interval``,
    ``target`` and ``enabled`` keys.
    """
    if replace:
        logger.info("override replaces all built-in collectors")
        registry.clear()

    for name, entry in overrides.items():
        if isinstance(entry, int) and not isinstance(entry, bool):
            entry = {"interval": entry}
        if not isinstance(entry, dict):
            raise ConfigurationError(f"collector '{name}': invalid override entry {entry!r}")

        if not entry.get("enabled", True):
            registry.unregister(name)
            continue

        current = registry.get(name)
        target = entry.get("target")
        if target:
            func = resolve_target(target)
        elif current is not None:
            func = current.func
        else:
            raise ConfigurationError(f"collector '{name}': no target given for a new collector")

        interval = entry.get("interval", current.interval if current else None)
        if interval is None:
            raise ConfigurationError(f"collector '{name}': no interval given for a new collector")
        registry.register(name, interval, func)


def load_overrides(registry: CollectorRegistry, path: Optional[str]) -> bool:
    """Load the override file at path into registry.

    A missing or unreadable file is not an error; the built-in collectors are
    used as they are.

    Returns:
        True if an override file was loaded
    """
    if not path:
        return False
    if not (os.path.isfile(path) and os.access(path, os.R_OK)):
        logger.debug(f"overload script '{path}' does not exist or is not readable")
        return False

    logger.info(f"source {path}")
    settings = Dynaconf(settings_files=[path], environments=False)
    collectors = settings.get("collectors", {}) or {}
    if not isinstance(collectors, dict):
        raise ConfigurationError(f"'collectors' in {path} must be a mapping")
    apply_overrides(
        registry,
        {str(name).lower(): _plain(entry) for name, entry in collectors.items()},
        replace=bool(settings.get("replace", False)),
    )
    return True


def _plain(entry: Any) -> Any:
    # Dynaconf hands back Box objects, the rest of the code expects plain dicts
    if isinstance(entry, dict):
        return {str(k).lower(): v for k, v in entry.items()}
    return entry


def build_registry(overload_path: Optional[str] = None) -> CollectorRegistry:
    """Return built-in collectors merged with the optional override file."""
    import collectors  # noqa: F401 - registers the built-in collectors

    registry = _registry.copy()
    load_overrides(registry, overload_path)
    return registry
