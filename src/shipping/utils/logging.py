"""Logging configuration for the shipping context.

Standard library handlers carry the output; structlog supplies the
structured key/value rendering used by every service module. Records at
ERROR and above, including the critical reconciliation records for
bookings that could not be saved, are also kept in a separate file.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

_ENV_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_JSON_ENVIRONMENTS = {"production", "staging"}

# Chatty third-party loggers held at WARNING whatever the service level is
_QUIET_LOGGERS = ("httpx", "asyncio", "urllib3")


def current_environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """Resolve the log level, letting ``LOG_LEVEL`` override the environment default."""
    return os.getenv("LOG_LEVEL", _ENV_LEVELS.get(current_environment(), "INFO")).upper()


def _rotating(path: Path, level: int | str) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: Path | None = None) -> None:
    """Send records to stdout, ``shipstream.log`` and ``shipstream_error.log``."""
    level = get_log_level()
    log_dir = log_dir or Path(os.getenv("SHIPPING_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        logging.StreamHandler(sys.stdout),
        _rotating(log_dir / "shipstream.log", level),
        _rotating(log_dir / "shipstream_error.log", logging.ERROR),
    ]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer() -> Any:
    if current_environment() in _JSON_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def setup_structlog() -> None:
    """Tenant and request keys bound with ``bind_tenant`` appear on every line."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if current_environment() in _JSON_ENVIRONMENTS:
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    setup_stdlib_logging()
    setup_structlog()


def bind_tenant(tenant_id: str, **kwargs: Any) -> None:
    """Attach the tenant (and any extra keys) to every subsequent log line of this request."""
    structlog.contextvars.bind_contextvars(tenant_id=tenant_id, **kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
