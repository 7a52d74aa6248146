"""
utils/logging.py — structlog setup shared by the CLI and the pipelines.

Log records go through stdlib logging to stderr so that stdout stays free for
command output (`frbudget discover` prints the trace JSON there). The renderer
is JSON for CI runs and a console renderer otherwise (settings.log_format).

Usage:
    from frbudget_pipeline.utils.logging import configure_logging, get_logger

    configure_logging("DEBUG", "console")
    log = get_logger(__name__, track="spending", year=2025)
    log.info("records_page", dataset_id="plf25-depenses-2025-selon-destination", offset=100)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from frbudget_shared.config import settings

# Third-party loggers that log every request at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _level_number(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure stdlib logging and structlog for the current process.

    Should be called once at startup; later calls only reconfigure structlog.

    Args:
        log_level:  "DEBUG", "INFO", … (default settings.log_level).
        log_format: "json" or "console" (default settings.log_format).
    """
    level = _level_number(log_level or settings.log_level)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """structlog logger for `name`, pre-bound with `initial_values`."""
    logger = structlog.get_logger(name)
    return logger.bind(**initial_values) if initial_values else logger  # type: ignore[return-value]
