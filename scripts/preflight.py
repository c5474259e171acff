"""CLI preflight checks for metadata refresh worker readiness."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence

from metadata_refresh.config import Settings, get_settings
from metadata_refresh.core.preflight import run_preflight


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run metadata refresh preflight checks and return a CI-friendly exit code.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print report as JSON instead of human-readable text.",
    )
    return parser


def _render_text_report(report: dict, settings: Settings) -> str:
    lines = []
    status = "PASSED" if report["ok"] else "FAILED"
    lines.append(
        f"Preflight {status} (env={report['environment']}, timestamp={report['timestamp_utc']})"
    )
    lines.append(
        f"Worker: source={settings.metadata_source_name} "
        f"strategy={settings.metadata_working_copy_strategy} "
        f"cron='{settings.metadata_refresh_cron}'"
    )
    for check in report["checks"]:
        icon = "OK" if check["ok"] else "FAIL"
        lines.append(f"[{icon}] {check['name']}: {check['detail']}")
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> int:
    report = await run_preflight()
    payload = report.as_dict()
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(_render_text_report(payload, get_settings()))
    return 0 if report.ok else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
