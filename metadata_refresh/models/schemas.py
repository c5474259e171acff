"""Pydantic v2 schemas for records decoded from the metadata catalogs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

# ─── GachaEvent.json ───────────────────────────────────────────────────────────


class GachaEventRecord(BaseModel):
    """One entry of ``GachaEvent.json``. Keys are PascalCase in the source."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(alias="Name")
    version: str = Field(alias="Version")
    order: NonNegativeInt = Field(alias="Order")
    banner: str | None = Field(default=None, alias="Banner")
    banner2: str | None = Field(default=None, alias="Banner2")
    # Kept as text; the mapper owns timestamp parsing.
    active_from: str = Field(alias="From")
    active_to: str = Field(alias="To")
    # Known values are listed in tables.BannerType; new kinds pass through.
    type: NonNegativeInt = Field(alias="Type")
    up_orange_list: list[NonNegativeInt] = Field(alias="UpOrangeList")
    up_purple_list: list[NonNegativeInt] = Field(alias="UpPurpleList")


# ─── Material.json / DisplayItem.json / Weapon.json ───────────────────────────


class CatalogItemRecord(BaseModel):
    """The two fields the known-item index needs from any item catalog."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: NonNegativeInt = Field(alias="Id")
    rank_level: NonNegativeInt = Field(alias="RankLevel")
