"""Structlog configuration for family-graph.

Library modules call ``structlog.get_logger(__name__)`` and log key/value
events. Output goes to stderr so command output on stdout stays clean.
"""
from __future__ import annotations

import logging
import sys
from typing import Literal, TextIO

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel | str = "INFO", *, json: bool = True, stream: TextIO | None = None) -> None:
    """Configure structlog.

    Args:
        level: Minimum level to emit
        json: Render JSON lines; otherwise use the human-readable console renderer
        stream: Destination (defaults to stderr)
    """
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        # stderr is looked up per call
        logger_factory=lambda *args: structlog.PrintLogger(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def bind_actor(actor_id: str) -> None:
    """Attach the acting account to every subsequent log event."""
    structlog.contextvars.bind_contextvars(actor_id=actor_id)


configure_logging()
