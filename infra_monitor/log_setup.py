"""
Structured logging setup.

Configures structlog on top of the standard library logging module. JSON is
the default renderer; the text format renders with structlog's console
renderer for local development.

Example:
    >>> setup_logging(level="DEBUG", log_format=LogFormat.TEXT)
    >>> structlog.get_logger(__name__).info("engine_started", rules=4)
"""

import logging
from typing import Union

import structlog

from infra_monitor.config.models import LogFormat, LogLevel


def setup_logging(
    level: Union[LogLevel, str] = LogLevel.INFO,
    log_format: Union[LogFormat, str] = LogFormat.JSON,
) -> None:
    """
    Configure structured logging.

    Args:
        level: Log level name.
        log_format: "json" or "text".
    """
    level_name = LogLevel(str(getattr(level, "value", level)).upper()).value
    log_format = LogFormat(getattr(log_format, "value", log_format))

    if log_format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name),
        force=True,
    )

    # Reduce noise from client libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
