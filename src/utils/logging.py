"""Structured logging setup."""

import logging
import sys
from typing import Optional

import structlog

from ..config import settings


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure structlog and route stdlib logging through the same level.

    Args:
        level: Log level name (defaults to LOG_LEVEL)
        fmt: ``json`` or ``console`` (defaults to LOG_FORMAT)
    """
    config = settings.logging
    level_name = (level or config.log_level).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or config.log_format).lower()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )
    # The docker SDK is chatty at debug level
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))
    logging.getLogger("docker").setLevel(max(log_level, logging.INFO))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend(
            [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
