"""Atomic delete-all + insert-all of a table's contents."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from metadata_refresh.models.tables import Base

logger = structlog.get_logger()


async def _replace_in_transaction(
    db: AsyncSession,
    model: type[Base],
    rows: Sequence[Base],
) -> int:
    async with db.begin():
        await db.execute(delete(model))
        db.add_all(rows)
        await db.flush()
    return len(rows)


async def replace_table(
    db: AsyncSession,
    model: type[Base],
    rows: Sequence[Base],
) -> int:
    """Replace every row of ``model``'s table with ``rows`` in one transaction.

    ``db`` must not already be inside a transaction. On any error the
    transaction is rolled back and the error propagates. Cancellation of the
    caller is deferred until the transaction has committed or rolled back.

    Returns:
        Number of rows written.
    """
    table = model.__tablename__
    task = asyncio.ensure_future(_replace_in_transaction(db, model, rows))
    try:
        count = await asyncio.shield(task)
    except asyncio.CancelledError:
        if not task.done():
            logger.warning("metadata_replace_cancel_deferred", table=table)
            await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.error("metadata_replace_failed", table=table, error=str(task.exception()))
        raise
    except Exception:
        logger.exception("metadata_replace_failed", table=table)
        raise

    logger.info("metadata_table_replaced", table=table, rows=count)
    return count
