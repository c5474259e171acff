"""Exception types raised by the metadata refresh pipeline."""

from __future__ import annotations

from collections.abc import Sequence


class MetadataRefreshError(Exception):
    """Base error for metadata refresh failures."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class GitCommandError(MetadataRefreshError):
    """A git invocation failed, timed out, or could not be started."""

    def __init__(
        self,
        args: Sequence[str],
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__("GIT_COMMAND_FAILED", message)


class CatalogParseError(MetadataRefreshError):
    """A catalog document or one of its fields could not be decoded."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__("CATALOG_MALFORMED", f"{path}: {message}")
