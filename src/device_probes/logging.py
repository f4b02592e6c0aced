"""Structured logging configuration for device probes.

Probes own stdout for the status line, so every log record goes to stderr.
"""

from __future__ import annotations

import logging
import sys
from typing import List, Literal

import structlog


def configure_logging(
    log_format: Literal["json", "text"] = "text",
    log_level: str = "WARNING",
) -> None:
    """Configure structlog for the probe run.

    Args:
        log_format: Output format - "json" for log shippers, "text" for a terminal.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    shared_processors: List[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors: List[structlog.typing.Processor] = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Reconfigured once settings are loaded, so bound loggers must not be cached
        cache_logger_on_first_use=False,
    )

    # Library loggers (paramiko, httpx) go to stderr as well
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
    )
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level)
