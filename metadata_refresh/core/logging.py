"""structlog configuration shared by the Celery worker and the scripts.

Library modules only call ``structlog.get_logger()``; the process entrypoint
calls ``configure_logging()`` once.
"""

from __future__ import annotations

import logging

import structlog

from metadata_refresh.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog for console (dev) or JSON (production) output."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # ConsoleRenderer prints tracebacks itself; JSON needs them pre-formatted.
    renderers: list = (
        [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        if settings.is_production
        else [structlog.dev.ConsoleRenderer()]
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
