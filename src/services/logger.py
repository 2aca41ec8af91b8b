"""
Logging setup for the pointer recorder

Root handlers:
- console (colorlog when colored_output is on)
- app.log: everything at file_level, rotating
- errors.log: ERROR and above, rotating
- interactions.log: focus/recorder/controller activity only, rotating
"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import colorlog

# Loggers whose records end up in interactions.log
INTERACTION_LOGGERS = ("core", "services.pointer_context", "services.hover_logger",
                       "services.input_tracker", "services.motion_tracker")

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

# LogRecord attributes that are not user-supplied "extra" fields
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

_HANDLER_TAG = "_vrpointer_handler"


class LoggerService:
    """
    Owns the handlers attached to the root logger.

    Creating a second service replaces the handlers of the first, so
    tests and reconfiguration never stack duplicate output.
    """

    DEFAULTS: dict[str, Any] = {
        "log_dir": "./logs",
        "log_level": "DEBUG",
        "console_level": "INFO",
        "file_level": "DEBUG",
        "max_bytes": 5 * 1024 * 1024,
        "backup_count": 3,
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "date_format": "%Y-%m-%d %H:%M:%S",
        "colored_output": True,
        "json_logs": False,
        "file_output": True,
        "interaction_log": True,
        "console_output": True,
    }

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = {**self.DEFAULTS, **(config or {})}
        self.loggers: dict[str, logging.Logger] = {}
        self.handlers: dict[str, list[logging.Handler]] = {}
        self.log_dir = self._writable_dir(Path(self.config["log_dir"]))

        root = logging.getLogger()
        root.setLevel(_level(self.config["log_level"]))
        _detach_tagged(root)

        if self.config["console_output"]:
            self._attach(root, self._console_handler())
        if self.config["file_output"]:
            self._attach(root, self._rotating_handler("app.log", self.config["file_level"]))
            self._attach(root, self._rotating_handler("errors.log", "ERROR"))
            if self.config["interaction_log"]:
                handler = self._rotating_handler("interactions.log", "DEBUG")
                handler.addFilter(InteractionFilter())
                self._attach(root, handler)

    @staticmethod
    def _writable_dir(path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
            if not os.access(path, os.W_OK):
                raise PermissionError(f"Log directory not writable: {path}")
            return path
        except OSError:
            fallback = Path("./logs")
            fallback.mkdir(parents=True, exist_ok=True)
            return fallback

    def _attach(self, logger: logging.Logger, handler: logging.Handler):
        setattr(handler, _HANDLER_TAG, True)
        logger.addHandler(handler)
        self.handlers.setdefault(logger.name, []).append(handler)

    def _plain_formatter(self) -> logging.Formatter:
        return logging.Formatter(self.config["format"], datefmt=self.config["date_format"])

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(_level(self.config["console_level"]))
        if self.config["colored_output"]:
            handler.setFormatter(
                colorlog.ColoredFormatter(
                    "%(log_color)s" + self.config["format"],
                    datefmt=self.config["date_format"],
                    log_colors=LEVEL_COLORS,
                )
            )
        else:
            handler.setFormatter(self._plain_formatter())
        return handler

    def _rotating_handler(self, filename: str, level: str) -> logging.Handler:
        try:
            handler: logging.Handler = RotatingFileHandler(
                self.log_dir / filename,
                maxBytes=self.config["max_bytes"],
                backupCount=self.config["backup_count"],
                encoding="utf-8",
            )
        except OSError:
            # Read-only filesystem: keep logging on stderr
            handler = logging.StreamHandler(sys.stderr)

        handler.setLevel(_level(level))
        handler.setFormatter(JsonFormatter() if self.config["json_logs"] else self._plain_formatter())
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        return self.loggers.setdefault(name, logging.getLogger(name))

    def set_level(self, level: str, logger_name: str | None = None):
        logging.getLogger(logger_name).setLevel(_level(level))

    def cleanup(self):
        """Detach and close every handler this service attached."""
        for logger_name, attached in self.handlers.items():
            target = logging.getLogger(logger_name)
            for handler in attached:
                target.removeHandler(handler)
                handler.close()
        self.handlers.clear()
        self.loggers.clear()


class InteractionFilter(logging.Filter):
    """Pass records from the focus, recorder and controller loggers."""

    def filter(self, record: logging.LogRecord) -> bool:
        return any(
            record.name == prefix or record.name.startswith(prefix + ".")
            for prefix in INTERACTION_LOGGERS
        )


class JsonFormatter(logging.Formatter):
    """One JSON object per line; extra={} fields are copied through."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        return json.dumps(entry, default=str)


def _level(name: str) -> int:
    return getattr(logging, str(name).upper())


def _detach_tagged(logger: logging.Logger):
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()


_service: LoggerService | None = None


def setup_logging(overrides: dict | None = None) -> logging.Logger:
    """
    Configure logging from config.LOGGING once; later calls are no-ops.

    Args:
        overrides: LoggerService settings taking precedence over the config

    Returns:
        The root logger
    """
    global _service

    if _service is not None:
        return logging.getLogger()

    from config import config as app_config

    settings = {
        "log_dir": str(app_config.FILES["log_dir"]),
        "console_level": app_config.LOGGING["level"],
        "max_bytes": app_config.LOGGING["max_bytes"],
        "backup_count": app_config.LOGGING["backup_count"],
        "format": app_config.LOGGING["format"],
        "date_format": app_config.LOGGING["date_format"],
        "console_output": app_config.LOGGING["console_output"],
    }
    settings.update(overrides or {})

    _service = LoggerService(settings)
    app_config.set_logger(logging.getLogger("config"))
    return logging.getLogger()


def get_logger(name: str) -> logging.Logger:
    if _service is None:
        setup_logging()
    return _service.get_logger(name)


def cleanup_logging():
    global _service

    if _service is not None:
        _service.cleanup()
        _service = None
