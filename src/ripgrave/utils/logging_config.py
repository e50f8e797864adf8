"""Structured logging setup for ripgrave.

Engines obtain their loggers with ``structlog.get_logger(__name__)`` and
emit dotted event names (``bury.item``, ``record.malformed_line``). The
CLI calls :func:`configure_logging` once so that log events go to stderr
and never mix with listing output on stdout.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(verbose: bool = False) -> None:
    """Route structlog output to stderr with a level filter.

    Args:
        verbose: Emit DEBUG/INFO events too; otherwise WARNING and above
    """
    level = logging.DEBUG if verbose else logging.WARNING

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
