"""Unit tests for worker preflight checks."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from metadata_refresh.config import Settings
from metadata_refresh.core.preflight import (
    CheckResult,
    check_database,
    check_git,
    check_metadata_source,
    check_settings,
    run_preflight,
)


def _result(name: str, ok: bool, detail: str) -> CheckResult:
    return CheckResult(name=name, ok=ok, detail=detail)


@patch("metadata_refresh.core.preflight.get_settings")
def test_check_settings_passes_for_defaults(mock_get_settings) -> None:
    mock_get_settings.return_value = Settings(_env_file=None)

    result = check_settings()

    assert result.ok is True
    assert "strategy=persistent" in result.detail


@patch("metadata_refresh.core.preflight.get_settings")
def test_check_settings_fails_on_unknown_strategy(mock_get_settings) -> None:
    mock_get_settings.return_value = Settings(
        _env_file=None, metadata_working_copy_strategy="rsync"
    )

    result = check_settings()

    assert result.ok is False
    assert "rsync" in result.detail


@patch("metadata_refresh.core.preflight.get_settings")
def test_check_settings_fails_on_bad_cron(mock_get_settings) -> None:
    mock_get_settings.return_value = Settings(_env_file=None, metadata_refresh_cron="hourly")

    assert check_settings().ok is False


@pytest.mark.asyncio
@patch("metadata_refresh.core.preflight.get_settings")
async def test_check_git_reports_missing_executable(mock_get_settings) -> None:
    mock_get_settings.return_value = SimpleNamespace(
        git_executable="definitely-not-git-7f3a", git_timeout_seconds=300.0
    )

    result = await check_git()

    assert result.ok is False
    assert "could not start" in result.detail


@pytest.mark.asyncio
@patch("metadata_refresh.core.preflight.get_settings")
async def test_check_database_and_source_against_sqlite(
    mock_get_settings, database_url, metadata_source
) -> None:
    mock_get_settings.return_value = SimpleNamespace(
        database_url=database_url, metadata_source_name="Snap.Metadata"
    )

    database = await check_database()
    source = await check_metadata_source()

    assert database.ok is True
    assert source.ok is True
    assert "Snap.Metadata" in source.detail


@pytest.mark.asyncio
@patch("metadata_refresh.core.preflight.get_settings")
async def test_check_metadata_source_fails_without_row(
    mock_get_settings, database_url, session_factory
) -> None:
    mock_get_settings.return_value = SimpleNamespace(
        database_url=database_url, metadata_source_name="Snap.Metadata"
    )

    result = await check_metadata_source()

    assert result.ok is False
    assert "no git_repositories row" in result.detail


@pytest.mark.asyncio
@patch("metadata_refresh.core.preflight.get_settings")
@patch("metadata_refresh.core.preflight.check_redis", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_metadata_source", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_database", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_git", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_settings")
async def test_run_preflight_skips_dependency_checks_when_settings_fail(
    mock_settings,
    mock_git,
    mock_db,
    mock_source,
    mock_redis,
    mock_get_settings,
) -> None:
    mock_settings.return_value = _result("settings", False, "bad strategy")
    mock_get_settings.return_value = SimpleNamespace(app_env="staging")

    report = await run_preflight()

    assert report.ok is False
    assert [check.name for check in report.checks] == ["settings"]
    mock_git.assert_not_awaited()
    mock_db.assert_not_awaited()
    mock_source.assert_not_awaited()
    mock_redis.assert_not_awaited()


@pytest.mark.asyncio
@patch("metadata_refresh.core.preflight.get_settings")
@patch("metadata_refresh.core.preflight.check_redis", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_metadata_source", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_database", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_git", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_settings")
async def test_run_preflight_passes_when_all_checks_pass(
    mock_settings,
    mock_git,
    mock_db,
    mock_source,
    mock_redis,
    mock_get_settings,
) -> None:
    mock_settings.return_value = _result("settings", True, "strategy=persistent")
    mock_git.return_value = _result("git", True, "git version 2.43.0")
    mock_db.return_value = _result("database", True, "connection ok")
    mock_source.return_value = _result("metadata_source", True, "Snap.Metadata")
    mock_redis.return_value = _result("redis", True, "ping ok")
    mock_get_settings.return_value = SimpleNamespace(app_env="production")

    report = await run_preflight()

    assert report.ok is True
    assert report.environment == "production"
    assert [check.name for check in report.checks] == [
        "settings",
        "git",
        "database",
        "metadata_source",
        "redis",
    ]


@pytest.mark.asyncio
@patch("metadata_refresh.core.preflight.get_settings")
@patch("metadata_refresh.core.preflight.check_redis", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_metadata_source", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_database", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_git", new_callable=AsyncMock)
@patch("metadata_refresh.core.preflight.check_settings")
async def test_run_preflight_skips_source_lookup_when_database_fails(
    mock_settings,
    mock_git,
    mock_db,
    mock_source,
    mock_redis,
    mock_get_settings,
) -> None:
    mock_settings.return_value = _result("settings", True, "ok")
    mock_git.return_value = _result("git", True, "ok")
    mock_db.return_value = _result("database", False, "connection failed")
    mock_redis.return_value = _result("redis", True, "ping ok")
    mock_get_settings.return_value = SimpleNamespace(app_env="staging")

    report = await run_preflight()

    assert report.ok is False
    mock_source.assert_not_awaited()
    assert report.as_dict()["checks"][2] == {
        "name": "database",
        "ok": False,
        "detail": "connection failed",
    }
