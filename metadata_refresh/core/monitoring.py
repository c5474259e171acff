"""Sentry initialisation and cron check-ins for the refresh job.

Without ``SENTRY_DSN`` the SDK is never initialised and every check-in call
is a no-op, so local runs need no monitoring setup.
"""

from __future__ import annotations

import time

import sentry_sdk
import structlog
from sentry_sdk.crons import capture_checkin
from sentry_sdk.crons.consts import MonitorStatus

from metadata_refresh.config import Settings, get_settings

logger = structlog.get_logger()


def init_sentry(settings: Settings | None = None) -> bool:
    """Initialise the Sentry SDK when a DSN is configured."""
    settings = settings or get_settings()
    if not settings.sentry_dsn:
        logger.debug("sentry_disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.0,
    )
    logger.info("sentry_initialised", environment=settings.app_env)
    return True


class SentryCheckInReporter:
    """``CheckInReporter`` backed by Sentry cron monitors."""

    def __init__(self, monitor_slug: str, *, schedule: str | None = None) -> None:
        self._monitor_slug = monitor_slug
        self._schedule = schedule
        self._started_at: float | None = None

    def _monitor_config(self) -> dict | None:
        if not self._schedule:
            return None
        return {"schedule": {"type": "crontab", "value": self._schedule}}

    def start(self) -> str | None:
        self._started_at = time.monotonic()
        return capture_checkin(
            monitor_slug=self._monitor_slug,
            status=MonitorStatus.IN_PROGRESS,
            monitor_config=self._monitor_config(),
        )

    def finish(self, check_in_id: str | None, *, ok: bool) -> None:
        duration = None
        if self._started_at is not None:
            duration = time.monotonic() - self._started_at
        capture_checkin(
            monitor_slug=self._monitor_slug,
            check_in_id=check_in_id,
            status=MonitorStatus.OK if ok else MonitorStatus.ERROR,
            duration=duration,
        )
