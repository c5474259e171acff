"""Celery application factory."""

from __future__ import annotations

import structlog
from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from metadata_refresh.config import get_settings
from metadata_refresh.core.logging import configure_logging
from metadata_refresh.core.monitoring import init_sentry

logger = structlog.get_logger()

METADATA_REFRESH_TASK = "metadata_refresh.workers.tasks.refresh_metadata"


def _parse_cron(expr: str) -> crontab:
    """Parse a 5-field cron expression into Celery crontab."""
    parts = expr.split()
    if len(parts) != 5:
        logger.warning("invalid_cron_expression", expr=expr, fallback="0 * * * *")
        parts = ["0", "*", "*", "*", "*"]
    return crontab(
        minute=parts[0],
        hour=parts[1],
        day_of_month=parts[2],
        month_of_year=parts[3],
        day_of_week=parts[4],
    )


def create_celery_app() -> Celery:
    """Create and configure Celery application."""
    settings = get_settings()

    app = Celery(
        "metadata_refresh",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["metadata_refresh.workers.tasks"],
    )

    beat_schedule: dict[str, dict] = {}
    if settings.metadata_refresh_enabled:
        beat_schedule["metadata-refresh"] = {
            "task": METADATA_REFRESH_TASK,
            "schedule": _parse_cron(settings.metadata_refresh_cron),
            # A fire still queued when the next one is due is dropped.
            "options": {"expires": settings.metadata_refresh_lock_timeout_seconds},
        }

    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        # One refresh at a time per worker process; the Redis lock covers
        # multiple workers.
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        beat_schedule=beat_schedule,
    )

    return app


@worker_process_init.connect
def _init_worker_process(**_kwargs) -> None:
    configure_logging()
    init_sentry()


celery_app = create_celery_app()
