"""Thin async wrapper around the git executable.

Every command runs as an asyncio subprocess with a bounded timeout. The
process is killed if the timeout expires or the awaiting task is cancelled,
so a stuck fetch never outlives the refresh cycle.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import structlog

from metadata_refresh.services.metadata.errors import GitCommandError

logger = structlog.get_logger()

DEFAULT_GIT_TIMEOUT = 300.0


def redact_url(value: str) -> str:
    """Hide credentials embedded in a clone URL before it reaches the logs."""
    parts = urlsplit(value)
    if not parts.scheme or "@" not in parts.netloc:
        return value
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


def _render_command(command: list[str]) -> list[str]:
    return [redact_url(part) for part in command]


def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()


async def run_git(
    *args: str,
    cwd: Path | None = None,
    executable: str = "git",
    timeout: float = DEFAULT_GIT_TIMEOUT,
    config: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    """Run ``git <args>`` and return its stdout.

    Args:
        cwd: Working directory for the command.
        executable: git binary name or path.
        timeout: Seconds before the process is killed.
        config: Values passed as ``-c key=value`` ahead of the subcommand.
        check: Raise ``GitCommandError`` on a non-zero exit code.

    Raises:
        GitCommandError: The command could not start, timed out, or failed.
    """
    command = [executable]
    for key, value in (config or {}).items():
        command.extend(["-c", f"{key}={value}"])
    command.extend(args)
    rendered = _render_command(command)

    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd) if cwd is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except OSError as exc:
        raise GitCommandError(rendered, f"could not start {executable}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError as exc:
        _kill(process)
        await process.wait()
        raise GitCommandError(rendered, f"git timed out after {timeout:g}s") from exc
    except asyncio.CancelledError:
        _kill(process)
        await process.wait()
        raise

    output = stdout.decode("utf-8", errors="replace")
    error_output = stderr.decode("utf-8", errors="replace").strip()
    logger.debug("git_command_finished", command=rendered, returncode=process.returncode)

    if check and process.returncode != 0:
        raise GitCommandError(
            rendered,
            f"git exited with {process.returncode}: {redact_url(error_output)}",
            returncode=process.returncode,
            stderr=error_output,
        )
    return output


async def shallow_clone(
    url: str,
    directory: Path,
    *,
    branch: str,
    executable: str = "git",
    timeout: float = DEFAULT_GIT_TIMEOUT,
    config: Mapping[str, str] | None = None,
) -> None:
    """Depth-1 clone of a single branch into ``directory``."""
    logger.info("git_clone_started", url=redact_url(url), directory=str(directory), branch=branch)
    await run_git(
        "clone",
        "--depth", "1",
        "--no-tags",
        "--single-branch",
        "--branch", branch,
        url,
        str(directory),
        executable=executable,
        timeout=timeout,
        config=config,
    )
    logger.info("git_clone_finished", directory=str(directory))
