"""Create or update the git source row the refresh job reads.

Usage:
    uv run python -m scripts.seed_metadata_source \
        --https-url https://github.com/DGP-Studio/Snap.Metadata.git \
        --web-url https://github.com/DGP-Studio/Snap.Metadata
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

import structlog

from metadata_refresh.config import get_settings
from metadata_refresh.core.logging import configure_logging
from metadata_refresh.models.database import get_async_session, get_engine
from metadata_refresh.models.tables import GitRepository
from metadata_refresh.services.metadata.git import redact_url
from metadata_refresh.services.metadata.source_locator import locate_source

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the metadata git source row.")
    parser.add_argument("--name", default=None, help="Defaults to METADATA_SOURCE_NAME.")
    parser.add_argument("--https-url", required=True)
    parser.add_argument("--web-url", default="")
    parser.add_argument("--type", dest="source_type", default="github")
    return parser


async def run(name: str, https_url: str, web_url: str, source_type: str) -> None:
    try:
        async for db in get_async_session():
            source = await locate_source(db, name)
            if source is None:
                db.add(GitRepository(
                    name=name,
                    https_url=https_url,
                    web_url=web_url,
                    type=source_type,
                ))
                action = "created"
            else:
                source.https_url = https_url
                source.web_url = web_url
                source.type = source_type
                action = "updated"
            logger.info(
                "seed_metadata_source_done",
                action=action,
                name=name,
                https_url=redact_url(https_url),
            )
    finally:
        await get_engine().dispose()


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()
    name = args.name or get_settings().metadata_source_name
    asyncio.run(run(name, args.https_url, args.web_url, args.source_type))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
