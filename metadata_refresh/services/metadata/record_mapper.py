"""Turn decoded catalog records into table rows."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from metadata_refresh.models.schemas import CatalogItemRecord, GachaEventRecord
from metadata_refresh.models.tables import (
    UP_ORANGE_CAPACITY,
    UP_PURPLE_CAPACITY,
    GachaEvent,
    KnownItem,
)
from metadata_refresh.services.metadata.errors import CatalogParseError

GACHA_EVENT_LOCALE = "CHS"


def parse_timestamp(value: str, *, field: str) -> datetime:
    """Parse an ISO-8601 style timestamp; aware values become naive UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise CatalogParseError(field, f"invalid timestamp {value!r}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def truncate(values: Sequence[int], capacity: int) -> list[int]:
    """Keep the first ``capacity`` entries. Overflow is dropped, not an error."""
    return list(values[:capacity])


def map_gacha_event(record: GachaEventRecord, *, locale: str = GACHA_EVENT_LOCALE) -> GachaEvent:
    return GachaEvent(
        version=record.version,
        name=record.name,
        locale=locale,
        order=record.order,
        active_from=parse_timestamp(record.active_from, field=f"{record.name}.From"),
        active_to=parse_timestamp(record.active_to, field=f"{record.name}.To"),
        type=int(record.type),
        up_orange_list=truncate(record.up_orange_list, UP_ORANGE_CAPACITY),
        up_purple_list=truncate(record.up_purple_list, UP_PURPLE_CAPACITY),
    )


def map_gacha_events(
    records: Iterable[GachaEventRecord],
    *,
    locale: str = GACHA_EVENT_LOCALE,
) -> list[GachaEvent]:
    return [map_gacha_event(record, locale=locale) for record in records]


def build_known_items(catalogs: Sequence[Sequence[CatalogItemRecord]]) -> list[KnownItem]:
    """First-wins merge of item catalogs into one id → quality index.

    ``catalogs`` is processed strictly in the given order; an id already
    captured from an earlier catalog (or earlier in the same catalog) is
    never overwritten.
    """
    merged: dict[int, KnownItem] = {}
    for catalog in catalogs:
        for record in catalog:
            if record.id not in merged:
                merged[record.id] = KnownItem(id=record.id, quality=record.rank_level)
    return list(merged.values())
