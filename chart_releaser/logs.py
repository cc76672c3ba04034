"""structlog configuration for the command line tool."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog


def _logger_factory(stream: TextIO | None):
    # Resolve sys.stderr per logger rather than at configure time.
    def factory(*args: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(stream or sys.stderr)

    return factory


def configure_logging(debug: bool = False, stream: TextIO | None = None) -> None:
    """Route structured log events to stderr as console lines.

    INFO and above are shown by default; ``debug`` lowers the threshold to
    DEBUG.
    """
    level = logging.DEBUG if debug else logging.INFO
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(colors=False),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_logger_factory(stream),
        cache_logger_on_first_use=False,
    )
