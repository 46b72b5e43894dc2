"""Process-wide access to the active tagdist configuration."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import logging

from tagdist.foundation.config import (
    UnifiedConfig,
    apply_env_overrides,
    find_config_file,
    load_config,
)

logger = logging.getLogger(__name__)

_OVERRIDE: UnifiedConfig | None = None
# discovered configs, keyed by the directory they were discovered from
_DISCOVERED: dict[Path, UnifiedConfig] = {}


def reset_runtime_config_cache() -> None:
    """Forget every discovered configuration."""
    _DISCOVERED.clear()


@contextmanager
def runtime_config_override(config: UnifiedConfig | None) -> Iterator[None]:
    """Serve ``config`` from :func:`get_runtime_config` inside the block."""
    global _OVERRIDE
    previous, _OVERRIDE = _OVERRIDE, config
    try:
        yield
    finally:
        _OVERRIDE = previous


def _discover(cwd: Path) -> UnifiedConfig:
    cfg_path = find_config_file(cwd)
    if cfg_path is None:
        logger.debug("config.defaults", extra={"cwd": str(cwd)})
        return apply_env_overrides(UnifiedConfig())
    logger.debug("config.discovered", extra={"path": cfg_path})
    return load_config(cfg_path)


def get_runtime_config(path: str | Path | None = None) -> UnifiedConfig:
    """Return the active configuration.

    An explicit ``path`` is always read fresh. Otherwise an active override
    wins, then ``tagdist.yml`` discovered in the working directory, then the
    dataclass defaults with environment overrides applied.
    """
    if path is not None:
        return load_config(str(path))
    if _OVERRIDE is not None:
        return _OVERRIDE

    cwd = Path.cwd()
    config = _DISCOVERED.get(cwd)
    if config is None:
        config = _DISCOVERED[cwd] = _discover(cwd)
    return config


__all__ = [
    "get_runtime_config",
    "reset_runtime_config_cache",
    "runtime_config_override",
]
