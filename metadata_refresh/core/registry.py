"""Working copy registry — resolves the configured strategy.

The registry is the single place where working copy implementations are
wired. The refresh job calls ``get_working_copy_provider()`` and gets back a
concrete implementation chosen by ``METADATA_WORKING_COPY_STRATEGY``.

Usage:
    from metadata_refresh.core.registry import get_working_copy_provider

    provider = get_working_copy_provider()
    async with provider.snapshot(source) as root:
        ...
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import structlog

from metadata_refresh.config import Settings, get_settings
from metadata_refresh.core.protocols import WorkingCopyProvider
from metadata_refresh.services.metadata.working_copy import (
    DisposableWorkingCopyProvider,
    PersistentWorkingCopyProvider,
)

logger = structlog.get_logger()

STRATEGY_PERSISTENT = "persistent"
STRATEGY_DISPOSABLE = "disposable"

WorkingCopyFactory = Callable[[Settings], WorkingCopyProvider]


def _persistent(settings: Settings) -> WorkingCopyProvider:
    return PersistentWorkingCopyProvider(
        Path(settings.metadata_working_copy_dir),
        branch=settings.metadata_default_branch,
        git_executable=settings.git_executable,
        timeout=settings.git_timeout_seconds,
        proxy_url=settings.git_proxy_url,
    )


def _disposable(settings: Settings) -> WorkingCopyProvider:
    return DisposableWorkingCopyProvider(
        Path(settings.metadata_temp_dir) if settings.metadata_temp_dir else None,
        branch=settings.metadata_default_branch,
        git_executable=settings.git_executable,
        timeout=settings.git_timeout_seconds,
        proxy_url=settings.git_proxy_url,
    )


_WORKING_COPY_FACTORIES: dict[str, WorkingCopyFactory] = {
    STRATEGY_PERSISTENT: _persistent,
    STRATEGY_DISPOSABLE: _disposable,
}


def register_working_copy_provider(name: str, factory: WorkingCopyFactory) -> None:
    """Register an additional strategy (used by tests and extensions)."""
    _WORKING_COPY_FACTORIES[name] = factory
    logger.debug("working_copy_strategy_registered", strategy=name)


def available_strategies() -> list[str]:
    return sorted(_WORKING_COPY_FACTORIES)


def get_working_copy_provider(
    settings: Settings | None = None,
    *,
    strategy: str | None = None,
) -> WorkingCopyProvider:
    """Build the working copy provider for ``strategy`` (default: from settings).

    Raises:
        ValueError: The strategy name is not registered.
    """
    settings = settings or get_settings()
    name = (strategy or settings.metadata_working_copy_strategy).strip().lower()
    factory = _WORKING_COPY_FACTORIES.get(name)
    if factory is None:
        raise ValueError(
            f"Unknown working copy strategy: {name!r}. "
            f"Available: {', '.join(available_strategies())}"
        )
    return factory(settings)
