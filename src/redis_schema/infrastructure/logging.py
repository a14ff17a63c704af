"""Structured logging configuration.

Events are emitted through structlog as snake_case event names with keyword
context (``table``, ``count``, ...). Redis URLs found in event values have
their credentials masked before rendering.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, MutableMapping

import structlog
from structlog.types import Processor

_URL_CREDENTIALS = re.compile(r"(rediss?://)[^@/\s]*@")


def mask_redis_credentials(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace ``user:password@`` in Redis URLs with ``***@``."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "://" in value:
            event_dict[key] = _URL_CREDENTIALS.sub(r"\1***@", value)
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> structlog.BoundLogger:
    """
    Configure structlog for the record store.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 'json' for one object per line, 'console' for humans

    Returns:
        A logger bound to the redis_schema service
    """
    numeric_level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    # redis-py logs every reconnect attempt at INFO
    logging.getLogger("redis").setLevel(max(numeric_level, logging.WARNING))

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            mask_redis_credentials,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return get_logger("redis_schema")


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a logger, optionally bound to context such as ``table=...``."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
