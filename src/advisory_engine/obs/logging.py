"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(*, debug: bool = False, json_output: bool = False) -> None:
    """Configure structlog for the service.

    Args:
        debug: Emit debug events (recovery fallthroughs, slot promotions).
        json_output: Render one JSON object per line instead of console output.
    """

    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
