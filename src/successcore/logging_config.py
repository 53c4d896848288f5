# src/successcore/logging_config.py
"""
Logging configuration for successcore applications.

The library modules only ever call ``logging.getLogger(__name__)``; they
install no handlers and print nothing. An application (such as the
``successcore`` CLI) calls :func:`configure_logging` once at startup.

Key concepts:

    **Display filter**: When ``console_enabled=False`` (the default), the
    console handler still exists but only passes through log records that
    carry ``extra={"display": True}``. This lets operational messages reach
    the user in quiet mode while debug chatter stays file-only.

    **File modes**: ``file_mode="single"`` (the default) appends to one
    file with a ``RotatingFileHandler``; ``file_mode="per_run"`` creates a
    new timestamped file for every invocation.

Usage:
    from successcore.logging_config import configure_logging, log_display

    configure_logging(app_name="successcore", config={"console_enabled": True})

    logger = logging.getLogger("successcore.cli")
    log_display(logger, logging.INFO, "Archive opened at %s", root)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": True,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/successcore/logs",
    "file_mode": "single",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 1024 * 1024,
    "rotation_backup_count": 3,
    "display_min_level": "INFO",
    "components": {
        "successcore": "DEBUG",
    },
}


def _level(value: Any, default: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


class DisplayFilter(logging.Filter):
    """Controls which log records pass through to the console handler.

    When the console is globally enabled (``-v``) every record passes and
    the handler's own level does the filtering. Otherwise only records
    with ``record.display = True`` at or above ``display_min_level`` pass.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


class LoggingManager:
    """
    Singleton owning the handlers installed on the root logger.

    Ensures logging is only configured once per process unless
    ``force_reconfigure`` is passed.
    """

    _instance: Optional["LoggingManager"] = None
    _configured: bool = False
    _log_file_path: Optional[Path] = None
    _console_handler: Optional[logging.Handler] = None
    _file_handler: Optional[logging.Handler] = None

    def __new__(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        return cls()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Optional[Path]:
        return cls._log_file_path

    def configure(
        self,
        app_name: str = "successcore",
        config: Optional[Dict[str, Any]] = None,
        force_reconfigure: bool = False,
    ) -> Optional[Path]:
        """
        Install console and file handlers on the root logger.

        Args:
            app_name: Used in the log file name.
            config: Overrides merged over :data:`DEFAULT_LOGGING_CONFIG`.
            force_reconfigure: Replace handlers even if already configured.

        Returns:
            Path of the log file, or ``None`` when file logging is off or
            the log directory cannot be used.
        """
        if LoggingManager._configured and not force_reconfigure:
            return LoggingManager._log_file_path

        log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}

        root_logger = logging.getLogger()
        for handler in (LoggingManager._console_handler, LoggingManager._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        LoggingManager._console_handler = None
        LoggingManager._file_handler = None
        LoggingManager._log_file_path = None
        root_logger.setLevel(logging.DEBUG)

        console_enabled = bool(log_config.get("console_enabled", False))
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(log_config["console_format"]))
        # Quiet mode: the filter is the only gate.
        console_handler.setLevel(
            _level(log_config["console_level"], logging.WARNING) if console_enabled else logging.DEBUG
        )
        console_handler.addFilter(DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_level(log_config["display_min_level"], logging.INFO),
        ))
        root_logger.addHandler(console_handler)
        LoggingManager._console_handler = console_handler

        if log_config.get("file_enabled", True):
            file_handler, log_path = self._create_file_handler(log_config, app_name)
            if file_handler is not None:
                root_logger.addHandler(file_handler)
                LoggingManager._file_handler = file_handler
                LoggingManager._log_file_path = log_path

        for component, level in log_config.get("components", {}).items():
            logging.getLogger(component).setLevel(_level(level, logging.INFO))

        LoggingManager._configured = True
        logging.getLogger(__name__).debug("Logging configured. Log file: %s", LoggingManager._log_file_path)
        return LoggingManager._log_file_path

    def _create_file_handler(
        self, config: Dict[str, Any], app_name: str
    ) -> Tuple[Optional[logging.Handler], Optional[Path]]:
        log_dir = Path(os.path.expanduser(config["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.get("file_mode", "single") == "per_run":
                filename = config["file_name_pattern"].format(app=app_name, timestamp=datetime.now())
                log_path = log_dir / filename
                handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
            else:
                log_path = log_dir / config["file_single_name"].format(app=app_name)
                handler = RotatingFileHandler(
                    log_path,
                    maxBytes=config["rotation_max_bytes"],
                    backupCount=config["rotation_backup_count"],
                    encoding="utf-8",
                )
        except (KeyError, ValueError) as e:
            sys.stderr.write(f"Warning: Invalid log file name pattern: {e}\n")
            return None, None
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot open log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(config["file_level"], logging.DEBUG))
        handler.setFormatter(logging.Formatter(config["file_format"]))
        return handler, log_path

    def set_console_level(self, level) -> None:
        if LoggingManager._console_handler is not None:
            LoggingManager._console_handler.setLevel(_level(level, logging.WARNING))

    def set_file_level(self, level) -> None:
        if LoggingManager._file_handler is not None:
            LoggingManager._file_handler.setLevel(_level(level, logging.DEBUG))

    def reset(self) -> None:
        """Remove installed handlers and forget the configuration."""
        root_logger = logging.getLogger()
        for handler in (LoggingManager._console_handler, LoggingManager._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        LoggingManager._console_handler = None
        LoggingManager._file_handler = None
        LoggingManager._log_file_path = None
        LoggingManager._configured = False


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "successcore",
    config: Optional[Dict[str, Any]] = None,
    force_reconfigure: bool = False,
) -> Optional[Path]:
    """Configure logging for an application. See :meth:`LoggingManager.configure`."""
    return LoggingManager.get_instance().configure(
        app_name=app_name, config=config, force_reconfigure=force_reconfigure
    )


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log a message that also reaches the console in quiet mode.

    The caller's ``extra`` dict is merged, not replaced.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Optional[Path]:
    return LoggingManager.get_log_file_path()


def set_console_level(level) -> None:
    LoggingManager.get_instance().set_console_level(level)


def set_file_level(level) -> None:
    LoggingManager.get_instance().set_file_level(level)


def set_component_level(component: str, level) -> None:
    logging.getLogger(component).setLevel(_level(level, logging.INFO))


def reset_logging() -> None:
    LoggingManager.get_instance().reset()
