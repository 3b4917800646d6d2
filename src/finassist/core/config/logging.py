"""Structured logging for the finassist LLM layer.

structlog renders every event; the standard library tree routes the output
to the console and, optionally, to a rotating file. Provider credentials are
masked before an event reaches any handler.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field
from rich.console import Console
from rich.logging import RichHandler
from structlog.types import EventDict, Processor, WrappedLogger

MIB = 1024 * 1024

# Substrings of event keys whose values never reach the logs in clear
SENSITIVE_FIELDS = ("api_key", "token", "authorization", "secret", "password")

_configured = False


class LogLevel(str, Enum):
    """Log levels accepted by LOG_LEVEL."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """LOG_FORMAT values: JSON lines for collectors, text for a terminal."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Where and how LLM-layer events are written."""

    app_name: str = "finassist"
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON

    console_enabled: bool = True
    file_enabled: bool = False
    file_path: str = "logs/finassist.log"
    max_file_size: int = Field(default=10 * MIB, ge=MIB, le=100 * MIB, description="Rotation size in bytes")
    backup_count: int = Field(default=5, ge=0)

    mask_sensitive_data: bool = True

    # HTTP and Redis clients are chatty at INFO
    library_levels: dict[str, LogLevel] = Field(
        default_factory=lambda: {
            "httpx": LogLevel.WARNING,
            "httpcore": LogLevel.WARNING,
            "redis": LogLevel.WARNING,
        }
    )


def mask_sensitive_data(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """structlog processor hiding credentials, keeping two characters at each end of long values.

    Only string values are masked; numeric fields such as ``prompt_tokens``
    are usage counts, not credentials.
    """
    for key, value in event_dict.items():
        if not isinstance(value, str) or not value or not any(field in key.lower() for field in SENSITIVE_FIELDS):
            continue
        event_dict[key] = f"{value[:2]}***{value[-2:]}" if len(value) > 4 else "***"
    return event_dict


def console_handler(config: LoggingConfig) -> logging.Handler:
    """JSON lines on stdout, or Rich output on stderr for the text format."""
    if config.format == LogFormat.JSON:
        return logging.StreamHandler(sys.stdout)
    return RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )


def file_handler(config: LoggingConfig) -> logging.Handler:
    path = Path(config.file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=config.max_file_size, backupCount=config.backup_count, encoding="utf-8")


def build_processors(config: LoggingConfig) -> list[Processor]:
    """Processor chain ending in the renderer selected by ``config.format``."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if config.mask_sensitive_data:
        processors.append(mask_sensitive_data)
    processors += [structlog.processors.StackInfoRenderer(), structlog.processors.format_exc_info]

    if config.format == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def setup_logging(config: LoggingConfig, force: bool = False) -> None:
    """Configure structlog and the root logger once per process (again with ``force``)."""
    global _configured
    if _configured and not force:
        return

    handlers: list[logging.Handler] = []
    if config.console_enabled:
        handlers.append(console_handler(config))
    if config.file_enabled:
        handlers.append(file_handler(config))
    logging.basicConfig(format="%(message)s", level=config.level.value, handlers=handlers, force=True)

    for name, level in config.library_levels.items():
        logging.getLogger(name).setLevel(level.value)

    structlog.configure(
        processors=build_processors(config),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(app=config.app_name)
    _configured = True

    settings_summary: dict[str, Any] = {"level": config.level.value, "format": config.format.value}
    if config.file_enabled:
        settings_summary["file_path"] = config.file_path
    structlog.get_logger(__name__).info("Logging configured", **settings_summary)
