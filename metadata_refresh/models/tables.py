"""SQLAlchemy ORM models for the metadata tables."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Fixed capacities of the featured-item lists on a banner.
UP_ORANGE_CAPACITY = 16
UP_PURPLE_CAPACITY = 5


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class BannerType(enum.IntEnum):
    """Gacha banner kinds as numbered by the metadata repository."""

    NOVICE = 100
    STANDARD = 200
    AVATAR_EVENT = 301
    WEAPON_EVENT = 302
    AVATAR_EVENT_2 = 400
    CHRONICLED = 500


class GitRepository(Base):
    """Administrative record describing an external git source."""

    __tablename__ = "git_repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    https_url: Mapped[str] = mapped_column(String, nullable=False)
    web_url: Mapped[str] = mapped_column(String, nullable=False, default="")
    type: Mapped[str] = mapped_column(String, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )


class GachaEvent(Base):
    """One banner campaign. Rewritten wholesale by every refresh."""

    __tablename__ = "gacha_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    locale: Mapped[str] = mapped_column(String, nullable=False, default="CHS")
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    active_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    active_to: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    type: Mapped[int] = mapped_column(Integer, nullable=False)
    # Ordered item ids, at most UP_ORANGE_CAPACITY / UP_PURPLE_CAPACITY entries.
    up_orange_list: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    up_purple_list: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)


class KnownItem(Base):
    """Flattened id → quality index across the item catalogs."""

    __tablename__ = "known_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    quality: Mapped[int] = mapped_column(Integer, nullable=False)
