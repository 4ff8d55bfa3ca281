"""Structured logging configuration."""

import json
import logging
import sys
from typing import Any

from src.utils.config import get_settings

# httpx logs every request at INFO; a single search issues hundreds of them.
NOISY_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        settings = get_settings()

        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "app_name": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Structured fields passed as extra={"extra_fields": {...}}
        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            payload.update(fields)

        return json.dumps(payload, default=str)


class StandardFormatter(logging.Formatter):
    """Plain text formatter: ``[time] LEVEL - logger - message``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


_logging_configured = False


def setup_logging(use_json: bool = False, force_reconfigure: bool = False) -> None:
    """
    Configure application logging.

    Installs one stdout handler on the root logger at LOG_LEVEL and turns
    the HTTP client loggers down to WARNING unless DEBUG is set. Calling it
    again is a no-op unless force_reconfigure is given.

    Args:
        use_json: Emit JSON lines instead of plain text.
        force_reconfigure: Replace an existing configuration.
    """
    global _logging_configured

    if _logging_configured and not force_reconfigure:
        return

    settings = get_settings()
    root_logger = logging.getLogger()

    # Only drop our own stdout handler; pytest's caplog handler must survive
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.StreamHandler) and handler.stream == sys.stdout:
            root_logger.removeHandler(handler)

    log_level = getattr(logging, settings.LOG_LEVEL)
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JsonFormatter() if use_json else StandardFormatter())
    root_logger.addHandler(console_handler)

    noisy_level = logging.DEBUG if settings.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    _logging_configured = True

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, format=%s",
        settings.LOG_LEVEL,
        "json" if use_json else "standard",
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger, configuring logging first if nobody has yet.

    Args:
        name: Logger name (typically __name__ of the caller)

    Returns:
        Logger instance
    """
    if not _logging_configured:
        setup_logging()

    return logging.getLogger(name)


def reset_logging() -> None:
    """Drop all root handlers and forget the configuration. Used by tests."""
    global _logging_configured

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)

    _logging_configured = False
