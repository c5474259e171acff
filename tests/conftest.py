"""Global pytest fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from metadata_refresh.models.tables import Base, GitRepository
from metadata_refresh.services.metadata.catalog_parser import CatalogLayout
from metadata_refresh.workers.celery_app import celery_app


@pytest.fixture(autouse=True)
def setup_celery():
    """Configure Celery to use memory broker for tests."""
    celery_app.conf.update(
        broker_url="memory://",
        result_backend="cache+memory://",
        task_always_eager=True,
        task_eager_propagates=True,
    )
    yield


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'metadata.db'}"


@pytest_asyncio.fixture
async def session_factory(database_url: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Real transactional store backed by a throwaway SQLite file."""
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def metadata_source(session_factory) -> GitRepository:
    source = GitRepository(
        name="Snap.Metadata",
        https_url="https://example.invalid/DGP-Studio/Snap.Metadata.git",
        web_url="https://example.invalid/DGP-Studio/Snap.Metadata",
        type="github",
    )
    async with session_factory() as db:
        db.add(source)
        await db.commit()
    return source


@pytest.fixture
def catalog_root(tmp_path: Path) -> Path:
    root = tmp_path / "Snap.Metadata"
    root.mkdir()
    return root


@pytest.fixture
def write_catalog(catalog_root: Path) -> Callable[[str, object], Path]:
    """Write ``Genshin/CHS/<file_name>``; str payloads are written verbatim."""
    layout = CatalogLayout()

    def _write(file_name: str, payload: object) -> Path:
        path = catalog_root / layout.path(file_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        text = payload if isinstance(payload, str) else json.dumps(payload)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


def _gacha_event_payload(name: str = "Epitome Invocation", **overrides) -> dict:
    payload = {
        "Name": name,
        "Version": "4.0",
        "Order": 1,
        "Banner": "https://example.invalid/banner.png",
        "Banner2": None,
        "From": "2023-08-16T06:00:00+08:00",
        "To": "2023-09-05T17:59:59+08:00",
        "Type": 302,
        "UpOrangeList": [11513, 15509],
        "UpPurpleList": [11401, 12403, 13401, 14403, 15401],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def gacha_event_payload() -> Callable[..., dict]:
    """Factory for one GachaEvent.json entry with realistic defaults."""
    return _gacha_event_payload


class FakeWorkingCopy:
    """``WorkingCopyProvider`` that hands out a prepared directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.sources: list[GitRepository] = []

    @asynccontextmanager
    async def snapshot(self, source: GitRepository) -> AsyncIterator[Path]:
        self.sources.append(source)
        yield self.root


class RecordingReporter:
    """``CheckInReporter`` that records check-ins instead of sending them."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str | None]] = []

    def start(self) -> str | None:
        self.events.append(("in_progress", "check-in-1"))
        return "check-in-1"

    def finish(self, check_in_id: str | None, *, ok: bool) -> None:
        self.events.append(("ok" if ok else "error", check_in_id))


@pytest.fixture
def working_copy(catalog_root: Path) -> FakeWorkingCopy:
    return FakeWorkingCopy(catalog_root)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
