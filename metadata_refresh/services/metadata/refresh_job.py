"""refresh_job.py — One scheduled metadata refresh cycle.

The job reports an in-progress check-in, runs every flow in order (a failing
flow does not stop the next one), then closes the check-in as ok or error.
The first failure is re-raised after the check-in so the scheduler sees it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from metadata_refresh.config import Settings, get_settings
from metadata_refresh.core.monitoring import SentryCheckInReporter
from metadata_refresh.core.protocols import CheckInReporter
from metadata_refresh.core.registry import get_working_copy_provider
from metadata_refresh.models.database import get_session_factory
from metadata_refresh.services.metadata.catalog_parser import CatalogLayout
from metadata_refresh.services.metadata.refresh_service import (
    FLOW_GACHA_EVENTS,
    FLOW_KNOWN_ITEMS,
    MetadataRefreshService,
    RefreshOutcome,
)

logger = structlog.get_logger()

ALL_FLOWS = (FLOW_GACHA_EVENTS, FLOW_KNOWN_ITEMS)


class MetadataRefreshJob:
    """Runs the refresh flows and reports the cycle to the cron monitor."""

    def __init__(
        self,
        service: MetadataRefreshService,
        reporter: CheckInReporter,
        *,
        flows: Sequence[str] = ALL_FLOWS,
    ) -> None:
        unknown = [flow for flow in flows if flow not in ALL_FLOWS]
        if unknown:
            raise ValueError(f"Unknown refresh flow(s): {', '.join(unknown)}")
        self._service = service
        self._reporter = reporter
        self._flows = tuple(flows)

    async def _run_flow(self, flow: str) -> RefreshOutcome:
        if flow == FLOW_GACHA_EVENTS:
            return await self._service.refresh_gacha_events()
        return await self._service.refresh_known_items()

    async def execute(self) -> list[RefreshOutcome]:
        check_in_id = self._reporter.start()
        outcomes: list[RefreshOutcome] = []
        failures: list[Exception] = []

        try:
            for flow in self._flows:
                try:
                    outcomes.append(await self._run_flow(flow))
                except Exception as exc:
                    failures.append(exc)
        except asyncio.CancelledError:
            logger.warning("metadata_refresh_cancelled", completed=len(outcomes))
            self._reporter.finish(check_in_id, ok=False)
            raise

        if failures:
            self._reporter.finish(check_in_id, ok=False)
            logger.error(
                "metadata_refresh_failed",
                failed=len(failures),
                errors=[f"{type(exc).__name__}: {exc}" for exc in failures],
            )
            raise failures[0]

        self._reporter.finish(check_in_id, ok=True)
        logger.info(
            "metadata_refresh_completed",
            outcomes={outcome.flow: outcome.status for outcome in outcomes},
            rows={outcome.flow: outcome.rows for outcome in outcomes},
        )
        return outcomes


def build_refresh_job(
    settings: Settings | None = None,
    *,
    strategy: str | None = None,
    flows: Sequence[str] = ALL_FLOWS,
) -> MetadataRefreshJob:
    """Wire a job from settings: database, working copy strategy, Sentry."""
    settings = settings or get_settings()
    service = MetadataRefreshService(
        get_session_factory(),
        get_working_copy_provider(settings, strategy=strategy),
        source_name=settings.metadata_source_name,
        layout=CatalogLayout(game=settings.metadata_game, locale=settings.metadata_locale),
    )
    reporter = SentryCheckInReporter(
        settings.metadata_refresh_monitor_slug,
        schedule=settings.metadata_refresh_cron,
    )
    return MetadataRefreshJob(service, reporter, flows=flows)


async def run_metadata_refresh(
    settings: Settings | None = None,
    *,
    strategy: str | None = None,
    flows: Sequence[str] = ALL_FLOWS,
) -> list[RefreshOutcome]:
    """Run one cycle bounded by ``metadata_refresh_timeout_seconds``."""
    settings = settings or get_settings()
    job = build_refresh_job(settings, strategy=strategy, flows=flows)
    async with asyncio.timeout(settings.metadata_refresh_timeout_seconds):
        return await job.execute()
