"""Structured logging configuration using structlog with JSON output.

Codec modules log through the stdlib ``logging`` module (``cborlite.*``
loggers). configure_logging() renders those records and structlog's own
entries as one JSON object per line on stdout, each carrying the service
name, timestamp, log level and event message.
"""

from __future__ import annotations

import logging
import sys

import structlog

LIBRARY_LOGGER = "cborlite"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(service_name: str, level: str = "INFO") -> None:
    """Configure JSON logging for structlog and the cborlite stdlib loggers.

    Args:
        service_name: Bound to every log entry (e.g. "cborlite", "cli").
        level: Log level as a string (e.g. "DEBUG", "INFO", "WARNING").
            DEBUG exposes writer failure reasons.
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            *_shared_processors(),
            structlog.stdlib.add_logger_name,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    # Replace handlers from an earlier call instead of stacking them
    library_logger = logging.getLogger(LIBRARY_LOGGER)
    for old in list(library_logger.handlers):
        library_logger.removeHandler(old)
    library_logger.addHandler(handler)
    library_logger.setLevel(numeric_level)
    # Records already rendered here must not reach root handlers as well
    library_logger.propagate = False

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)
