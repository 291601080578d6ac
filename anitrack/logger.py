"""Structured logging for the tracker.

Scan progress, Nyaa requests and parser calls are logged as structlog
events. Output is JSON in production and coloured console lines in
development. Anthropic keys never reach the output, and magnet links are
shortened to their info hash.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from anitrack.config import settings

# Keys whose values are always masked
SENSITIVE_KEYS = frozenset({"api_key", "secret", "authorization", "token"})

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "apscheduler")

_ANTHROPIC_KEY_PATTERN = re.compile(r"sk-ant-[\w-]+")
_INFO_HASH_PATTERN = re.compile(r"xt=urn:btih:([0-9a-zA-Z]+)")


def add_log_level(_logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to the event dict, reporting "warn" as "warning"."""
    event_dict["level"] = "warning" if method_name == "warn" else method_name
    return event_dict


def _mask(key: str, value: Any) -> Any:
    if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
        return "***"
    if isinstance(value, dict):
        return {k: _mask(k, v) for k, v in value.items()}
    if isinstance(value, str):
        return _ANTHROPIC_KEY_PATTERN.sub("sk-ant-***", value)
    return value


def censor_sensitive_data(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask secret fields and any Anthropic key embedded in a string.

    SDK error messages can echo the key back, so string values are
    scrubbed as well as secret-looking keys.
    """
    return {key: _mask(key, value) for key, value in event_dict.items()}


def shorten_magnets(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace full magnet links with their info hash."""
    for key, value in event_dict.items():
        if isinstance(value, str) and value.startswith("magnet:"):
            match = _INFO_HASH_PATTERN.search(value)
            event_dict[key] = f"magnet:{match.group(1)}" if match else "magnet:?"
    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Level override, defaults to ``settings.log_level``.
    """
    log_level = getattr(logging, (level or settings.log_level).upper())

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        censor_sensitive_data,
        shorten_magnets,
    ]

    if settings.is_production:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Per-request lines from these are only useful when debugging
    library_level = log_level if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("scan_started", show_count=3)
    """
    return structlog.get_logger(name)


configure_logging()
