"""Resolve the git source configuration for the metadata repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from metadata_refresh.models.tables import GitRepository


async def locate_source(db: AsyncSession, name: str) -> GitRepository | None:
    """Return the ``git_repositories`` row whose name matches exactly, if any."""
    result = await db.execute(
        select(GitRepository)
        .where(GitRepository.name == name)
        .order_by(GitRepository.id)
        .limit(1)
    )
    return result.scalar_one_or_none()
