"""Logging helpers.

Every module logs through ``structlog.get_logger()`` with key/value
events; this module wires structlog and the stdlib root logger together
once per process.
"""

import logging
import sys
from typing import Optional

import structlog

LOG_FORMAT = "%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None, json: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, ``INFO`` when omitted
        json: Render events as JSON lines instead of the console renderer
    """
    level_name = (level or "INFO").upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt=LOG_DATE_FORMAT),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally bound to a module name."""
    logger = structlog.get_logger()
    if name:
        return logger.bind(module=name)
    return logger
