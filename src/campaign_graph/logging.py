"""Structlog-based logging for the campaign graph layer.

Library code logs through structlog only; nothing here prints. Events are
rendered as one JSON object per line and handed to the stdlib ``logging``
root handler, which writes to stderr so command output on stdout stays clean.

Repositories log one ``<entity>.<action>`` event per successful write at INFO,
so the import-time default of WARNING keeps library users quiet until they
(or the CLI's ``--log-level``) ask for more.
"""
from __future__ import annotations

from typing import Literal, get_args

import logging
import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_LEVELS: tuple[str, ...] = get_args(LogLevel)
DEFAULT_LEVEL: LogLevel = "WARNING"


def configure_logging(level: LogLevel = DEFAULT_LEVEL) -> None:
    """(Re)configure logging; safe to call again, later calls win."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level), force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # Loggers bound at import time must pick up a later level change
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "campaign_graph"):
    return structlog.get_logger(name)


configure_logging()
