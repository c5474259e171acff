"""Preflight readiness checks for the metadata refresh worker.

Run these checks before deploying a worker to catch configuration or
dependency regressions early (database, Redis, git, source row).
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from datetime import UTC, datetime

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from metadata_refresh.config import get_settings
from metadata_refresh.core.registry import available_strategies, get_working_copy_provider
from metadata_refresh.services.metadata.errors import GitCommandError
from metadata_refresh.services.metadata.git import redact_url, run_git
from metadata_refresh.services.metadata.source_locator import locate_source


@dataclass(frozen=True)
class CheckResult:
    """A single preflight check outcome."""

    name: str
    ok: bool
    detail: str


@dataclass(frozen=True)
class PreflightReport:
    """Aggregated preflight report."""

    ok: bool
    environment: str
    timestamp_utc: str
    checks: list[CheckResult]

    def as_dict(self) -> dict:
        return {
            "ok": self.ok,
            "environment": self.environment,
            "timestamp_utc": self.timestamp_utc,
            "checks": [
                {"name": item.name, "ok": item.ok, "detail": item.detail}
                for item in self.checks
            ],
        }


def _pass(name: str, detail: str) -> CheckResult:
    return CheckResult(name=name, ok=True, detail=detail)


def _fail(name: str, detail: str) -> CheckResult:
    return CheckResult(name=name, ok=False, detail=detail)


def check_settings() -> CheckResult:
    """Validate the working copy strategy and schedule settings."""
    settings = get_settings()
    try:
        provider = get_working_copy_provider(settings)
    except ValueError as exc:
        return _fail("settings", str(exc))

    if len(settings.metadata_refresh_cron.split()) != 5:
        return _fail(
            "settings",
            f"METADATA_REFRESH_CRON={settings.metadata_refresh_cron!r} is not a 5-field cron",
        )

    return _pass(
        "settings",
        f"strategy={settings.metadata_working_copy_strategy} "
        f"({provider.__class__.__name__}; available: {', '.join(available_strategies())})",
    )


async def check_database() -> CheckResult:
    """Verify database connectivity."""
    settings = get_settings()
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return _pass("database", "connection ok")
    except Exception as exc:
        return _fail("database", f"connection failed: {exc}")
    finally:
        await engine.dispose()


async def check_redis() -> CheckResult:
    """Verify Redis connectivity."""
    settings = get_settings()
    redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    try:
        pong = await redis.ping()
        if pong is True:
            return _pass("redis", "ping ok")
        return _fail("redis", f"unexpected ping response: {pong!r}")
    except Exception as exc:
        return _fail("redis", f"ping failed: {exc}")
    finally:
        with contextlib.suppress(Exception):
            await redis.aclose()


async def check_git() -> CheckResult:
    """Verify the git executable can be started."""
    settings = get_settings()
    try:
        version = await run_git(
            "--version",
            executable=settings.git_executable,
            timeout=min(settings.git_timeout_seconds, 30.0),
        )
    except GitCommandError as exc:
        return _fail("git", str(exc))
    return _pass("git", version.strip())


async def check_metadata_source() -> CheckResult:
    """Verify the configured source row exists (a missing row skips refreshes)."""
    settings = get_settings()
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_factory() as db:
            source = await locate_source(db, settings.metadata_source_name)
    except Exception as exc:
        return _fail("metadata_source", f"lookup failed: {exc}")
    finally:
        await engine.dispose()

    if source is None:
        return _fail(
            "metadata_source",
            f"no git_repositories row named {settings.metadata_source_name!r}",
        )
    return _pass("metadata_source", f"{source.name} -> {redact_url(source.https_url)}")


async def run_preflight() -> PreflightReport:
    """Run all preflight checks and return a consolidated report."""
    checks: list[CheckResult] = []

    settings_check = check_settings()
    checks.append(settings_check)

    # If the settings themselves are broken, dependency checks are noisy.
    if settings_check.ok:
        checks.append(await check_git())
        database_check = await check_database()
        checks.append(database_check)
        if database_check.ok:
            checks.append(await check_metadata_source())
        checks.append(await check_redis())

    ok = all(item.ok for item in checks)
    return PreflightReport(
        ok=ok,
        environment=get_settings().app_env,
        timestamp_utc=datetime.now(UTC).isoformat(),
        checks=checks,
    )
