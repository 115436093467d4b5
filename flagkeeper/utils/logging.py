"""
Logging setup.

Feature modules log through structlog; infrastructure modules use the
standard library. Both end up on the root handler configured here.

Usage:
    from flagkeeper.core.config import get_settings
    from flagkeeper.utils.logging import configure_logging

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: Log format (json, text)
    """
    log_level = getattr(logging, level.upper())

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if fmt.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # structlog events arrive already rendered
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    # SQL echo is controlled by DB_ECHO, not the library level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
