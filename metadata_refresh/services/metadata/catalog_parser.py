"""catalog_parser.py — Decode catalog JSON documents from a working copy.

Each catalog is a JSON array of objects. A missing file is reported and
yields ``None`` so the calling flow can skip; malformed JSON or a record that
fails validation raises ``CatalogParseError``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from metadata_refresh.models.schemas import CatalogItemRecord, GachaEventRecord
from metadata_refresh.services.metadata.errors import CatalogParseError

logger = structlog.get_logger()

RecordT = TypeVar("RecordT", bound=BaseModel)

GACHA_EVENT_FILE = "GachaEvent.json"
MATERIAL_FILE = "Material.json"
DISPLAY_ITEM_FILE = "DisplayItem.json"
WEAPON_FILE = "Weapon.json"

# Priority order for the known-item merge. Earlier catalogs win on id clashes.
KNOWN_ITEM_FILES = (MATERIAL_FILE, DISPLAY_ITEM_FILE, WEAPON_FILE)


@dataclass(frozen=True)
class CatalogLayout:
    """Catalog file locations relative to the working copy root."""

    game: str = "Genshin"
    locale: str = "CHS"

    def path(self, file_name: str) -> str:
        return f"{self.game}/{self.locale}/{file_name}"

    @property
    def gacha_events(self) -> str:
        return self.path(GACHA_EVENT_FILE)

    @property
    def known_item_catalogs(self) -> tuple[str, ...]:
        return tuple(self.path(name) for name in KNOWN_ITEM_FILES)


@lru_cache
def _adapter(record_type: type[BaseModel]) -> TypeAdapter[list[Any]]:
    return TypeAdapter(list[record_type])  # type: ignore[valid-type]


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')} ({exc.error_count()} error(s))"


async def read_catalog(
    root: Path,
    relative_path: str,
    record_type: type[RecordT],
) -> list[RecordT] | None:
    """Read and validate one catalog file.

    Returns:
        The decoded records, or ``None`` when the file does not exist.

    Raises:
        CatalogParseError: The document is not valid JSON or a record is
            missing a required field.
    """
    path = root / relative_path
    if not path.is_file():
        logger.error("metadata_catalog_missing", path=str(path))
        return None

    raw = await asyncio.to_thread(path.read_bytes)
    try:
        records = _adapter(record_type).validate_json(raw)
    except ValidationError as exc:
        raise CatalogParseError(relative_path, _first_error(exc)) from exc

    logger.debug("metadata_catalog_read", path=relative_path, count=len(records))
    return records


async def read_gacha_events(root: Path, layout: CatalogLayout) -> list[GachaEventRecord] | None:
    return await read_catalog(root, layout.gacha_events, GachaEventRecord)


async def read_known_item_catalogs(
    root: Path,
    layout: CatalogLayout,
) -> list[list[CatalogItemRecord]] | None:
    """Read the item catalogs in merge priority order.

    Returns ``None`` as soon as one catalog is missing; the known-item index
    is only rebuilt from the full set.
    """
    catalogs: list[list[CatalogItemRecord]] = []
    for relative_path in layout.known_item_catalogs:
        records = await read_catalog(root, relative_path, CatalogItemRecord)
        if records is None:
            return None
        catalogs.append(records)
    return catalogs
