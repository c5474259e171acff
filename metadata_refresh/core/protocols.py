"""Protocols for the pluggable edges of the refresh pipeline.

The refresh flows import these protocols, never concrete implementations.
Swap the working copy strategy or the check-in backend by changing config.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from pathlib import Path
from typing import Protocol, runtime_checkable

from metadata_refresh.models.tables import GitRepository


@runtime_checkable
class WorkingCopyProvider(Protocol):
    """Produces a local directory holding the source's current tree.

    Implementations: persistent (one long-lived clone updated in place),
    disposable (fresh clone per call, deleted on exit).
    """

    def snapshot(self, source: GitRepository) -> AbstractAsyncContextManager[Path]:
        """Yield the working copy root for the duration of the ``async with``."""
        ...


@runtime_checkable
class CheckInReporter(Protocol):
    """Reports job progress to an external cron monitor."""

    def start(self) -> str | None:
        """Send an in-progress check-in and return its id."""
        ...

    def finish(self, check_in_id: str | None, *, ok: bool) -> None:
        """Close the check-in opened by ``start`` as ok or error."""
        ...
