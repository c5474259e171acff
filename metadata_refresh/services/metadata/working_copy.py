"""working_copy.py — Local snapshots of the metadata git repository.

Two strategies share the ``WorkingCopyProvider`` protocol:

- ``PersistentWorkingCopyProvider`` keeps one shallow clone on disk and
  brings it up to date on every call (fetch + hard reset). A missing or
  corrupted clone is discarded and cloned again.
- ``DisposableWorkingCopyProvider`` clones into a fresh temporary directory
  per call and always deletes it when the ``async with`` block exits.

Either way the caller only ever sees a complete tree: clones land in a
staging or temporary directory and are exposed only after git succeeds.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog

from metadata_refresh.models.tables import GitRepository
from metadata_refresh.services.metadata.errors import GitCommandError
from metadata_refresh.services.metadata.git import (
    DEFAULT_GIT_TIMEOUT,
    redact_url,
    run_git,
    shallow_clone,
)

logger = structlog.get_logger()


def _network_config(proxy_url: str) -> dict[str, str]:
    if not proxy_url:
        return {}
    return {"http.proxy": proxy_url, "https.proxy": proxy_url}


class PersistentWorkingCopyProvider:
    """One long-lived clone, incrementally updated.

    Not safe for concurrent use: the scheduler guarantees a single running
    refresh per clone directory.
    """

    def __init__(
        self,
        directory: Path,
        *,
        branch: str = "main",
        git_executable: str = "git",
        timeout: float = DEFAULT_GIT_TIMEOUT,
        proxy_url: str = "",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._branch = branch
        self._git_executable = git_executable
        self._timeout = timeout
        self._proxy_url = proxy_url

    @property
    def directory(self) -> Path:
        return self._directory

    @asynccontextmanager
    async def snapshot(self, source: GitRepository) -> AsyncIterator[Path]:
        await self.sync(source)
        yield self._directory

    async def sync(self, source: GitRepository) -> None:
        """Make the clone match the tip of the configured branch."""
        if not await self._is_valid():
            logger.info("metadata_working_copy_missing", directory=str(self._directory))
            await self._reclone(source)
            return

        try:
            await self._update(source)
        except GitCommandError as exc:
            logger.warning(
                "metadata_working_copy_update_failed",
                directory=str(self._directory),
                error=str(exc),
            )
            await self._reclone(source)

    def _local_config(self) -> dict[str, str]:
        # safe.directory is only honoured from protected (command-line) config.
        return {
            "safe.directory": str(self._directory),
            "core.longpaths": "true",
        }

    async def _git(self, *args: str, network: bool = False, check: bool = True) -> str:
        config = self._local_config()
        if network:
            config.update(_network_config(self._proxy_url))
        return await run_git(
            *args,
            cwd=self._directory,
            executable=self._git_executable,
            timeout=self._timeout,
            config=config,
            check=check,
        )

    async def _is_valid(self) -> bool:
        if not (self._directory / ".git").exists():
            return False
        try:
            output = await self._git("rev-parse", "--is-inside-work-tree")
        except GitCommandError:
            return False
        return output.strip() == "true"

    async def _update(self, source: GitRepository) -> None:
        branch = self._branch
        remote_ref = f"refs/remotes/origin/{branch}"

        await self._git("config", "core.longpaths", "true")
        if self._proxy_url:
            await self._git("config", "http.proxy", self._proxy_url)
            await self._git("config", "https.proxy", self._proxy_url)
        else:
            # Exit code 5 just means the key was not set.
            await self._git("config", "--unset-all", "http.proxy", check=False)
            await self._git("config", "--unset-all", "https.proxy", check=False)

        await self._git("remote", "set-url", "origin", source.https_url)
        await self._git("clean", "-ffdx")
        await self._git(
            "fetch",
            "--depth", "1",
            "--prune",
            "--no-tags",
            "origin",
            f"+refs/heads/{branch}:{remote_ref}",
            network=True,
        )
        await self._git("checkout", "--force", "-B", branch, remote_ref)
        await self._git("branch", f"--set-upstream-to=origin/{branch}", branch)
        await self._git("reset", "--hard", remote_ref)
        await self._git("clean", "-ffdx")

        head = (await self._git("rev-parse", "HEAD")).strip()
        logger.info(
            "metadata_working_copy_updated",
            directory=str(self._directory),
            url=redact_url(source.https_url),
            head=head,
        )

    def _remove_stale_staging(self) -> None:
        # Left behind when a previous swap was interrupted.
        for stale in self._directory.parent.glob(f"{self._directory.name}.clone-*"):
            logger.warning("metadata_working_copy_stale_staging_removed", directory=str(stale))
            shutil.rmtree(stale, ignore_errors=True)

    async def _reclone(self, source: GitRepository) -> None:
        staging = self._directory.with_name(
            f"{self._directory.name}.clone-{uuid.uuid4().hex[:8]}"
        )
        self._directory.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(self._remove_stale_staging)
        try:
            await shallow_clone(
                source.https_url,
                staging,
                branch=self._branch,
                executable=self._git_executable,
                timeout=self._timeout,
                config=_network_config(self._proxy_url),
            )
        except (GitCommandError, asyncio.CancelledError):
            shutil.rmtree(staging, ignore_errors=True)
            raise

        await asyncio.to_thread(shutil.rmtree, self._directory, True)
        staging.rename(self._directory)
        logger.info("metadata_working_copy_recloned", directory=str(self._directory))


class DisposableWorkingCopyProvider:
    """A fresh shallow clone per snapshot, removed on every exit path."""

    def __init__(
        self,
        parent_dir: Path | None = None,
        *,
        branch: str = "main",
        git_executable: str = "git",
        timeout: float = DEFAULT_GIT_TIMEOUT,
        proxy_url: str = "",
    ) -> None:
        self._parent_dir = Path(parent_dir) if parent_dir else None
        self._branch = branch
        self._git_executable = git_executable
        self._timeout = timeout
        self._proxy_url = proxy_url

    @asynccontextmanager
    async def snapshot(self, source: GitRepository) -> AsyncIterator[Path]:
        if self._parent_dir is not None:
            self._parent_dir.mkdir(parents=True, exist_ok=True)
        directory = Path(tempfile.mkdtemp(prefix="metadata-", dir=self._parent_dir))
        try:
            await shallow_clone(
                source.https_url,
                directory,
                branch=self._branch,
                executable=self._git_executable,
                timeout=self._timeout,
                config=_network_config(self._proxy_url),
            )
            yield directory
        finally:
            shutil.rmtree(directory, ignore_errors=True)
            logger.debug("metadata_working_copy_removed", directory=str(directory))
