"""
Logging setup.

Modules log through `structlog.get_logger(__name__)` with dotted event
names and key-value context. Nothing is configured on import; applications
call `configure_logging()` once.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int | str = logging.INFO, *, json: bool = False) -> None:
    if isinstance(level, str):
        level = logging.getLevelNamesMapping()[level.upper()]

    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


__all__ = ("configure_logging",)
