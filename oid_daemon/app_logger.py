from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from oid_daemon.app_config import DEFAULT_LOG_TAG


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    enabled: bool = True
    debug: bool = False
    debug_marker: Optional[str] = None
    tag: str = DEFAULT_LOG_TAG
    syslog: bool = True
    syslog_address: str = "/dev/log"
    log_dir: Optional[Path] = None
    log_file: Optional[str] = None
    console: bool = True
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5


if TYPE_CHECKING:
    from oid_daemon.app_config import AppConfig


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds color to log levels for console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        if record.levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
            )
        result = super().format(record)
        record.levelname = original_levelname
        return result


class FlushingStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler that flushes after every emit."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
            self.flush()
        except Exception:
            self.handleError(record)


class FlushingRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating file handler that flushes after every emit."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
            self.flush()
        except Exception:
            self.handleError(record)


class TagFilter(logging.Filter):
    """Stamps every record with the log tag; errors get the ``-error`` tag."""

    def __init__(self, tag: str) -> None:
        super().__init__()
        self.tag = tag

    def filter(self, record: logging.LogRecord) -> bool:
        record.log_tag = f"{self.tag}-error" if record.levelno >= logging.ERROR else self.tag
        return True


class DebugMarkerFilter(logging.Filter):
    """Lets DEBUG records through only while the marker file exists.

    The marker is checked for every record, so debug logging can be switched
    on and off at runtime with ``touch``/``rm``.
    """

    def __init__(self, marker: str) -> None:
        super().__init__()
        self.marker = marker

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno > logging.DEBUG:
            return True
        return os.path.exists(self.marker)


class AppLogger:
    _configured: bool = False

    @staticmethod
    def configure(app_config: "AppConfig", **overrides: Any) -> None:
        """
        Configure logging from an AppConfig instance.

        Keyword overrides (from the command line) that are not None replace
        the matching ``logger`` settings.
        """
        from typing import cast

        logger_cfg = cast(dict[str, Any], app_config.get("logger", {}))
        log_dir = logger_cfg.get("log_dir")
        config = LoggingConfig(
            level=logger_cfg.get("level", "INFO"),
            enabled=logger_cfg.get("enabled", True),
            debug=logger_cfg.get("debug", False),
            debug_marker=logger_cfg.get("debug_marker"),
            tag=logger_cfg.get("tag", DEFAULT_LOG_TAG),
            syslog=logger_cfg.get("syslog", True),
            syslog_address=logger_cfg.get("syslog_address", "/dev/log"),
            log_dir=Path(os.path.abspath(log_dir)) if log_dir else None,
            log_file=logger_cfg.get("log_file"),
            console=logger_cfg.get("console", True),
            max_bytes=logger_cfg.get("max_bytes", 10 * 1024 * 1024),
            backup_count=logger_cfg.get("backup_count", 5),
        )
        config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
        AppLogger(config)

    def __init__(self, config: LoggingConfig) -> None:
        if AppLogger._configured:
            return
        self._configure(config)
        AppLogger._configured = True

    @staticmethod
    def get(name: str | None = None) -> logging.Logger:
        return logging.getLogger(name)

    @staticmethod
    def effective_level(config: LoggingConfig) -> int:
        if config.debug or config.debug_marker:
            return logging.DEBUG
        return logging._nameToLevel.get(config.level.upper(), logging.INFO)

    @staticmethod
    def _configure(config: LoggingConfig) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)

        if not config.enabled:
            root.addHandler(logging.NullHandler())
            return

        level = AppLogger.effective_level(config)
        root.setLevel(level)

        # stdout carries the pass_persist protocol and is never a log sink
        handlers: list[logging.Handler] = []

        if config.syslog and os.path.exists(config.syslog_address):
            syslog_handler = logging.handlers.SysLogHandler(address=config.syslog_address)
            syslog_handler.setFormatter(
                logging.Formatter("%(log_tag)s[%(process)d]: %(levelname)s %(name)s %(message)s")
            )
            handlers.append(syslog_handler)

        fmt = (
            "%(asctime)s.%(msecs)03d "
            "%(log_tag)s "
            "%(levelname)s "
            "%(name)s "
            "[%(threadName)s] "
            "%(message)s"
        )

        if config.log_file:
            log_dir = config.log_dir or Path.cwd()
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = FlushingRotatingFileHandler(
                filename=log_dir / config.log_file,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S"))
            handlers.append(file_handler)

        # Mirror to the terminal only when run by hand in debug mode
        if config.console and config.debug and sys.stdin.isatty():
            console_handler = FlushingStreamHandler(sys.stderr)
            console_handler.setFormatter(ColoredFormatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S"))
            handlers.append(console_handler)

        if not handlers:
            handlers.append(logging.NullHandler())

        for handler in handlers:
            handler.setLevel(level)
            handler.addFilter(TagFilter(config.tag))
            if config.debug_marker and not config.debug:
                handler.addFilter(DebugMarkerFilter(config.debug_marker))
            root.addHandler(handler)

        AppLogger._suppress_third_party_loggers(level)

    @staticmethod
    def _suppress_third_party_loggers(level: int) -> None:
        logging.getLogger("dynaconf").setLevel(logging.WARNING)

        # Only let pysnmp talk in DEBUG mode
        if level > logging.DEBUG:
            logging.getLogger("pysnmp").setLevel(logging.WARNING)
        else:
            logging.getLogger("pysnmp").setLevel(logging.DEBUG)
