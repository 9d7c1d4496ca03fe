# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Logging setup for the command-line entry point.

Every module logs through structlog.get_logger(); this configures the
output once: one line per event on stderr, prefixed with a UTC timestamp
and the level.
"""

import logging
import sys

import structlog

from pgrestic.config import LogLevel

_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


def configure_logging(level: LogLevel | str = LogLevel.INFO) -> None:
    """Configure structlog for key/value output on stderr."""
    if isinstance(level, str):
        level = LogLevel(level.lower())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["timestamp", "level", "event"],
                drop_missing=True,
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS[level]),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
