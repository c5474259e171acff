"""refresh_service.py — The two metadata refresh flows.

Each flow runs LocateSource → ObtainWorkingCopy → Parse → Map → Replace.
Missing configuration, a missing catalog file, or empty catalogs end the
flow early as *skipped* without touching the database. Anything else that
goes wrong is logged and re-raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from metadata_refresh.core.protocols import WorkingCopyProvider
from metadata_refresh.models.tables import GachaEvent, GitRepository, KnownItem
from metadata_refresh.services.metadata.catalog_parser import (
    CatalogLayout,
    read_gacha_events,
    read_known_item_catalogs,
)
from metadata_refresh.services.metadata.record_mapper import (
    build_known_items,
    map_gacha_events,
)
from metadata_refresh.services.metadata.replacer import replace_table
from metadata_refresh.services.metadata.source_locator import locate_source

logger = structlog.get_logger()

FLOW_GACHA_EVENTS = "gacha_events"
FLOW_KNOWN_ITEMS = "known_items"

DEFAULT_SOURCE_NAME = "Snap.Metadata"


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of one flow run."""

    flow: str
    status: Literal["refreshed", "skipped"]
    rows: int = 0
    reason: str | None = None

    @classmethod
    def skipped(cls, flow: str, reason: str) -> RefreshOutcome:
        return cls(flow=flow, status="skipped", reason=reason)


class MetadataRefreshService:
    """Rebuilds ``gacha_events`` and ``known_items`` from the metadata repo."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        working_copy: WorkingCopyProvider,
        *,
        source_name: str = DEFAULT_SOURCE_NAME,
        layout: CatalogLayout | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._working_copy = working_copy
        self._source_name = source_name
        self._layout = layout or CatalogLayout()

    async def _locate_source(self) -> GitRepository | None:
        async with self._session_factory() as db:
            source = await locate_source(db, self._source_name)
        if source is None:
            logger.warning("metadata_source_missing", name=self._source_name)
        return source

    async def refresh_gacha_events(self) -> RefreshOutcome:
        log = logger.bind(flow=FLOW_GACHA_EVENTS)
        log.info("metadata_refresh_started")
        try:
            source = await self._locate_source()
            if source is None:
                return RefreshOutcome.skipped(FLOW_GACHA_EVENTS, "source_missing")

            async with self._working_copy.snapshot(source) as root:
                records = await read_gacha_events(root, self._layout)

            if records is None:
                return RefreshOutcome.skipped(FLOW_GACHA_EVENTS, "catalog_missing")
            if not records:
                log.warning("metadata_catalog_empty", path=self._layout.gacha_events)
                return RefreshOutcome.skipped(FLOW_GACHA_EVENTS, "catalog_empty")

            rows = map_gacha_events(records, locale=self._layout.locale)
            async with self._session_factory() as db:
                count = await replace_table(db, GachaEvent, rows)
        except Exception:
            log.exception("metadata_gacha_events_refresh_failed")
            raise

        log.info("metadata_gacha_events_refreshed", count=count)
        return RefreshOutcome(flow=FLOW_GACHA_EVENTS, status="refreshed", rows=count)

    async def refresh_known_items(self) -> RefreshOutcome:
        log = logger.bind(flow=FLOW_KNOWN_ITEMS)
        log.info("metadata_refresh_started")
        try:
            source = await self._locate_source()
            if source is None:
                return RefreshOutcome.skipped(FLOW_KNOWN_ITEMS, "source_missing")

            async with self._working_copy.snapshot(source) as root:
                catalogs = await read_known_item_catalogs(root, self._layout)

            if catalogs is None:
                return RefreshOutcome.skipped(FLOW_KNOWN_ITEMS, "catalog_missing")
            if not any(catalogs):
                log.warning(
                    "metadata_catalog_empty",
                    paths=list(self._layout.known_item_catalogs),
                )
                return RefreshOutcome.skipped(FLOW_KNOWN_ITEMS, "catalog_empty")

            rows = build_known_items(catalogs)
            async with self._session_factory() as db:
                count = await replace_table(db, KnownItem, rows)
        except Exception:
            log.exception("metadata_known_items_refresh_failed")
            raise

        log.info("metadata_known_items_refreshed", count=count)
        return RefreshOutcome(flow=FLOW_KNOWN_ITEMS, status="refreshed", rows=count)
