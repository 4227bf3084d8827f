"""Structured logging setup for the adapter.

Logs go to stdout through the standard library, rendered by ``structlog``
either as JSON lines (``LOG_JSON=true``) or in a readable console format.
"""

import logging
import sys

import structlog


SERVICE_NAME = "llamastack-adapter"


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Configure structlog and stdlib logging for the process.

    Args:
        log_level: ``debug``, ``info``, ``warning`` or ``error`` (case-insensitive)
        json_output: Render JSON lines instead of console output
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)
