"""One-shot metadata refresh cycle outside the Celery schedule.

Usage:
    uv run python -m scripts.refresh_metadata
    uv run python -m scripts.refresh_metadata --strategy disposable --only known-items
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

import structlog

from metadata_refresh.config import get_settings
from metadata_refresh.core.logging import configure_logging
from metadata_refresh.core.monitoring import init_sentry
from metadata_refresh.core.registry import available_strategies
from metadata_refresh.models.database import get_engine
from metadata_refresh.services.metadata.refresh_job import ALL_FLOWS, run_metadata_refresh
from metadata_refresh.services.metadata.refresh_service import (
    FLOW_GACHA_EVENTS,
    FLOW_KNOWN_ITEMS,
)

logger = structlog.get_logger()

_FLOW_CHOICES = {
    "gacha-events": FLOW_GACHA_EVENTS,
    "known-items": FLOW_KNOWN_ITEMS,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Refresh metadata tables from the git source.")
    parser.add_argument(
        "--strategy",
        choices=available_strategies(),
        default=None,
        help="Override METADATA_WORKING_COPY_STRATEGY for this run.",
    )
    parser.add_argument(
        "--only",
        choices=sorted(_FLOW_CHOICES),
        default=None,
        help="Run a single flow instead of both.",
    )
    return parser


async def run(strategy: str | None = None, only: str | None = None) -> None:
    settings = get_settings()
    flows = (_FLOW_CHOICES[only],) if only else ALL_FLOWS
    try:
        outcomes = await run_metadata_refresh(settings, strategy=strategy, flows=flows)
        for outcome in outcomes:
            logger.info(
                "refresh_metadata_done",
                flow=outcome.flow,
                status=outcome.status,
                rows=outcome.rows,
                reason=outcome.reason,
            )
    finally:
        await get_engine().dispose()


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()
    init_sentry()
    asyncio.run(run(strategy=args.strategy, only=args.only))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
