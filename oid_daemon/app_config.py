"""Application configuration management using Dynaconf."""

import os
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from dynaconf import Dynaconf

from oid_daemon.errors import ConfigurationError
from oid_daemon.oid_utils import is_valid_oid_str

DEFAULT_CONFIG_FILE = "oid_daemon.yaml"
DEFAULT_BASE_OID = ".1.3.6.1.4.1.8072.9999.9999"
DEFAULT_LOG_TAG = "snmpd-oid-daemon"
DEFAULT_OVERLOAD_FILE = "oid_daemon-overload.yaml"

DEFAULTS: dict[str, Any] = {
    "base_oid": DEFAULT_BASE_OID,
    "overload_script": None,
    "scheduler": {"tick_seconds": 1.0},
    "engine": {"read_timeout": 1.0},
    "channel": {"capacity": 1024, "put_timeout": 1.0},
    "logger": {
        "enabled": True,
        "level": "INFO",
        "debug": False,
        "debug_marker": None,
        "tag": DEFAULT_LOG_TAG,
        "syslog": True,
        "syslog_address": "/dev/log",
        "log_dir": None,
        "log_file": None,
        "console": True,
        "max_bytes": 10 * 1024 * 1024,
        "backup_count": 5,
    },
}


class AppConfig:
    """Singleton configuration manager for the OID daemon."""

    _instance = None
    _lock = Lock()
    _initialized = False

    def __new__(cls, config_path: str = DEFAULT_CONFIG_FILE) -> "AppConfig":
        """Create or return the singleton instance of AppConfig."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._initialized = False
            return cls._instance

    def __init__(self, config_path: str = DEFAULT_CONFIG_FILE) -> None:
        """Initialize singleton settings once from the specified config path."""
        if self.__class__._initialized and hasattr(self, "settings"):
            return
        self._init_config(config_path)

    def _init_config(self, config_path: str) -> None:
        """Initialize the configuration from the specified file.

        The default file is optional and is also looked up under data/. An
        explicitly given file has to exist.
        """
        if self.__class__._initialized:
            return

        settings_files: list[str] = []
        if config_path == DEFAULT_CONFIG_FILE:
            for candidate in (Path(config_path), Path("data") / config_path):
                if candidate.exists():
                    settings_files.append(str(candidate))
                    break
        elif os.path.exists(config_path):
            settings_files.append(config_path)
        else:
            raise ConfigurationError(f"Config file {config_path} not found")

        self.config_path = settings_files[0] if settings_files else None
        self.settings = Dynaconf(
            settings_files=settings_files,
            environments=False,
            envvar_prefix="OID_DAEMON",
        )
        self.__class__._initialized = True

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key, falling back to built-in defaults."""
        value = self.settings.get(key, None)
        if value is not None:
            return value
        node: Any = DEFAULTS
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node if node is not None else default

    def reload(self) -> None:
        """Reload the configuration from disk."""
        self.settings.reload()


@dataclass(frozen=True)
class DaemonSettings:
    """Effective settings after merging config file and command line."""

    base_oid: str = DEFAULT_BASE_OID
    overload_script: Optional[str] = None
    tick_seconds: float = 1.0
    read_timeout: float = 1.0
    channel_capacity: int = 1024
    channel_put_timeout: float = 1.0

    @classmethod
    def from_config(cls, config: AppConfig, **overrides: Any) -> "DaemonSettings":
        """Build settings from config; keyword overrides that are not None win.

        Raises:
            ConfigurationError: If the base OID is not a dotted integer sequence
        """
        values = {
            "base_oid": str(config.get("base_oid", DEFAULT_BASE_OID)),
            "overload_script": config.get("overload_script"),
            "tick_seconds": float(config.get("scheduler.tick_seconds", 1.0)),
            "read_timeout": float(config.get("engine.read_timeout", 1.0)),
            "channel_capacity": int(config.get("channel.capacity", 1024)),
            "channel_put_timeout": float(config.get("channel.put_timeout", 1.0)),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if values["overload_script"] is None:
            # Next to the config file, or in the working directory without one
            base_dir = Path(config.config_path).parent if config.config_path else Path(".")
            values["overload_script"] = str(base_dir / DEFAULT_OVERLOAD_FILE)
        if not is_valid_oid_str(values["base_oid"]):
            raise ConfigurationError(f"invalid base OID '{values['base_oid']}'!")
        return cls(**values)
