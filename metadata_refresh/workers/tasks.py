"""Celery tasks for the scheduled metadata refresh."""

from __future__ import annotations

import asyncio

import redis.asyncio as aioredis
import structlog
from celery import shared_task
from redis.exceptions import LockError

from metadata_refresh.config import Settings, get_settings
from metadata_refresh.models.database import get_engine
from metadata_refresh.services.metadata.refresh_job import run_metadata_refresh
from metadata_refresh.services.metadata.refresh_service import RefreshOutcome

logger = structlog.get_logger()

REFRESH_LOCK_NAME = "metadata-refresh-lock"


def _summarize(outcomes: list[RefreshOutcome]) -> dict:
    return {
        "status": "COMPLETED",
        "flows": {
            outcome.flow: {
                "status": outcome.status,
                "rows": outcome.rows,
                "reason": outcome.reason,
            }
            for outcome in outcomes
        },
    }


async def _refresh_with_lock(settings: Settings) -> dict:
    """Run one cycle unless another worker already holds the refresh lock."""
    redis = aioredis.from_url(settings.redis_url)
    lock = redis.lock(
        REFRESH_LOCK_NAME,
        timeout=settings.metadata_refresh_lock_timeout_seconds,
        blocking=False,
    )
    try:
        if not await lock.acquire():
            logger.warning("metadata_refresh_skipped_locked", lock=REFRESH_LOCK_NAME)
            return {"status": "SKIPPED", "reason": "locked"}
        try:
            outcomes = await run_metadata_refresh(settings)
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning("metadata_refresh_lock_expired", lock=REFRESH_LOCK_NAME)
        return _summarize(outcomes)
    finally:
        await redis.aclose()


async def _run_refresh(settings: Settings) -> dict:
    try:
        if settings.metadata_refresh_lock_enabled:
            return await _refresh_with_lock(settings)
        return _summarize(await run_metadata_refresh(settings))
    finally:
        # Pooled connections belong to this event loop; asyncio.run closes it.
        await get_engine().dispose()


@shared_task(name="metadata_refresh.workers.tasks.refresh_metadata")
def refresh_metadata() -> dict:
    """Scheduled entrypoint: run one metadata refresh cycle.

    Failures propagate so Celery records the task as failed; the job has
    already closed its monitor check-in as error by then.
    """
    return asyncio.run(_run_refresh(get_settings()))
