"""Tests for the operational CLI scripts."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from metadata_refresh.config import Settings
from metadata_refresh.core.preflight import CheckResult, PreflightReport
from metadata_refresh.services.metadata.refresh_service import FLOW_KNOWN_ITEMS, RefreshOutcome
from scripts import preflight as preflight_script
from scripts import refresh_metadata as refresh_script


def _report(ok: bool) -> PreflightReport:
    return PreflightReport(
        ok=ok,
        environment="staging",
        timestamp_utc="2026-10-18T09:00:00+00:00",
        checks=[CheckResult(name="git", ok=ok, detail="git version 2.43.0")],
    )


@patch("scripts.preflight.run_preflight", new_callable=AsyncMock)
def test_preflight_json_output_and_exit_code(mock_run, capsys) -> None:
    mock_run.return_value = _report(ok=False)

    assert preflight_script.main(["--json"]) == 1

    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is False
    assert payload["checks"][0]["name"] == "git"


@patch("scripts.preflight.get_settings")
@patch("scripts.preflight.run_preflight", new_callable=AsyncMock)
def test_preflight_text_output_names_worker_setup(mock_run, mock_get_settings, capsys) -> None:
    mock_run.return_value = _report(ok=True)
    mock_get_settings.return_value = Settings(
        _env_file=None, metadata_working_copy_strategy="disposable"
    )

    assert preflight_script.main([]) == 0

    out = capsys.readouterr().out
    assert "Worker: source=Snap.Metadata strategy=disposable cron='0 * * * *'" in out
    assert "[OK] git: git version 2.43.0" in out


def test_refresh_parser_rejects_unknown_flow() -> None:
    with pytest.raises(SystemExit):
        refresh_script._build_parser().parse_args(["--only", "characters"])


@pytest.mark.asyncio
@patch("scripts.refresh_metadata.get_engine")
@patch("scripts.refresh_metadata.run_metadata_refresh", new_callable=AsyncMock)
async def test_refresh_runs_selected_flow(mock_run, mock_get_engine) -> None:
    engine = MagicMock()
    engine.dispose = AsyncMock()
    mock_get_engine.return_value = engine
    mock_run.return_value = [RefreshOutcome(flow=FLOW_KNOWN_ITEMS, status="refreshed", rows=4)]

    await refresh_script.run(strategy="disposable", only="known-items")

    assert mock_run.await_args.kwargs == {"strategy": "disposable", "flows": (FLOW_KNOWN_ITEMS,)}
    engine.dispose.assert_awaited_once()
