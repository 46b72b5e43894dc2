from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)


@dataclass
class ApiConfig:
    """DataList API endpoint and credential settings."""

    base_url: str = field(
        default="https://portal.ixon.cloud/api",
        metadata={"env": "TAGDIST_API_BASE_URL"},
    )
    data_list_path: str = "/data"
    data_sources_path: str = "/agents/{agent_id}/data-sources"
    data_tags_path: str = "/agents/{agent_id}/data-tags"
    access_token: str | None = field(
        default=None, metadata={"env": "TAGDIST_API_ACCESS_TOKEN"}
    )
    application_id: str | None = field(
        default=None, metadata={"env": "TAGDIST_API_APPLICATION_ID"}
    )
    company_id: str | None = field(
        default=None, metadata={"env": "TAGDIST_API_COMPANY_ID"}
    )
    api_version: str = field(default="2", metadata={"env": "TAGDIST_API_VERSION"})
    timeout_seconds: float = field(
        default=10.0, metadata={"env": "TAGDIST_API_TIMEOUT"}
    )

    def url_for(self, path: str, **params: str) -> str:
        return self.base_url.rstrip("/") + path.format(**params)

    def headers(self) -> dict[str, str]:
        """Return request headers expected by the DataList API."""
        headers = {
            "Content-Type": "application/json",
            "Api-Version": str(self.api_version),
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.application_id:
            headers["Api-Application"] = self.application_id
        if self.company_id:
            headers["Api-Company"] = self.company_id
        return headers


@dataclass
class FetchConfig:
    """Pagination and concurrency knobs for the fetch engine."""

    page_limit: int = field(default=5000, metadata={"env": "TAGDIST_PAGE_LIMIT"})
    max_concurrent: int = field(
        default=10, metadata={"env": "TAGDIST_MAX_CONCURRENT"}
    )
    strategy: str = field(default="parallel", metadata={"env": "TAGDIST_STRATEGY"})
    min_request_interval_s: float = field(
        default=0.0, metadata={"env": "TAGDIST_MIN_REQUEST_INTERVAL"}
    )


@dataclass
class RetryConfig:
    """Rate-limit retry policy (linear backoff)."""

    max_retries: int = field(default=3, metadata={"env": "TAGDIST_MAX_RETRIES"})
    backoff_step_s: float = field(
        default=1.0, metadata={"env": "TAGDIST_BACKOFF_STEP"}
    )


@dataclass
class StatsConfig:
    """Defaults for the distribution summary."""

    confidence: float = field(default=95.0, metadata={"env": "TAGDIST_CONFIDENCE"})
    ignore_zero: bool = field(default=False, metadata={"env": "TAGDIST_IGNORE_ZERO"})
    factor: float = 1.0
    decimals: int = 2


CONFIG_SECTION_NAMES: tuple[str, ...] = ("api", "fetch", "retry", "stats")


@dataclass
class UnifiedConfig:
    """Configuration aggregating every tagdist section."""

    api: ApiConfig = field(default_factory=ApiConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)


_SECTION_TYPES: Dict[str, type] = {
    "api": ApiConfig,
    "fetch": FetchConfig,
    "retry": RetryConfig,
    "stats": StatsConfig,
}


def find_config_file(cwd: Path | None = None) -> str | None:
    """Return the first discoverable configuration file in ``cwd``."""

    base = Path.cwd() if cwd is None else cwd

    for name in ("tagdist.yml", "tagdist.yaml"):
        candidate = base / name
        if candidate.is_file():
            return str(candidate)
    return None


def _read_config_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                logger.error("Failed to parse configuration file %s: %s", path, exc)
                raise ValueError(f"Failed to parse configuration file {path}") from exc
    except (FileNotFoundError, OSError) as exc:
        logger.error("Unable to open configuration file %s: %s", path, exc)
        raise

    if not isinstance(data, dict):
        raise TypeError("Unified config must be a mapping")
    return data


def _extract_sections(data: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    sections: dict[str, dict[str, Any]] = {}
    for section_name in CONFIG_SECTION_NAMES:
        raw_section = data.get(section_name, {})
        if raw_section is None:
            raw_section = {}
        if not isinstance(raw_section, dict):
            raise TypeError(f"{section_name} section must be a mapping")
        known = {f.name for f in fields(_SECTION_TYPES[section_name])}
        unknown = sorted(set(raw_section) - known)
        if unknown:
            raise TypeError(f"unknown {section_name} keys: {', '.join(unknown)}")
        sections[section_name] = dict(raw_section)
    return sections


def _coerce_env_value(raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def apply_env_overrides(
    config: UnifiedConfig, environ: Mapping[str, str] | None = None
) -> UnifiedConfig:
    """Overwrite fields whose ``metadata["env"]`` variable is set."""

    env = os.environ if environ is None else environ
    for section_name in CONFIG_SECTION_NAMES:
        section = getattr(config, section_name)
        for f in fields(section):
            key = f.metadata.get("env")
            if not key or key not in env:
                continue
            current = getattr(section, f.name)
            try:
                setattr(section, f.name, _coerce_env_value(env[key], current))
            except ValueError as exc:
                raise ValueError(f"invalid value for {key}: {env[key]!r}") from exc
    return config


def load_config(path: str, *, environ: Mapping[str, str] | None = None) -> UnifiedConfig:
    """Parse YAML/JSON and populate :class:`UnifiedConfig`."""
    data = _read_config_mapping(path)
    sections = _extract_sections(data)

    built = {
        name: _SECTION_TYPES[name](**sections[name]) for name in CONFIG_SECTION_NAMES
    }
    config = UnifiedConfig(**built)
    return apply_env_overrides(config, environ)


__all__ = [
    "ApiConfig",
    "CONFIG_SECTION_NAMES",
    "FetchConfig",
    "RetryConfig",
    "StatsConfig",
    "UnifiedConfig",
    "apply_env_overrides",
    "find_config_file",
    "load_config",
]
