"""structlog configuration.

Called once by each entry point (HTTP app, CLI).  Library code only ever
does ``structlog.get_logger(__name__)``.
"""

from __future__ import annotations

import logging

import structlog

from storefront.infrastructure.config import ConfigurationError


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    level_no = logging.getLevelName(level.upper())
    if not isinstance(level_no, int):
        raise ConfigurationError(f"Unknown log level: {level!r}")

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
