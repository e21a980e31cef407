"""Configuration parsing from ``.atomtrace.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from atomtrace.memory.metrics_history import TREND_PERIODS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".atomtrace.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

DEFAULT_DATA_DIR = ".atomtrace"
DEFAULT_HISTORY_PAGE_SIZE = 20
DEFAULT_TREND_PERIOD = "month"


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


@dataclass
class ProjectConfig:
    """Project-level configuration."""

    root: str
    """Project root directory."""

    project_id: str = ""
    """Identifier attached to stored coverage reports (empty = unscoped)."""


@dataclass
class StorageConfig:
    """Where reports and snapshots are kept."""

    data_dir: str = DEFAULT_DATA_DIR
    """Data directory relative to the project root."""

    history_page_size: int = DEFAULT_HISTORY_PAGE_SIZE
    """Default page size for ``coverage history``."""

    @property
    def coverage_dir(self) -> str:
        return f"{self.data_dir}/coverage"

    @property
    def history_dir(self) -> str:
        return f"{self.data_dir}/history"


@dataclass
class MetricsConfig:
    """Metrics computation defaults."""

    trend_period: str = DEFAULT_TREND_PERIOD
    """Default window for ``metrics trends`` (week, month or quarter)."""

    records_file: str = ""
    """Default atoms/tests/recommendations export, relative to the project root."""


@dataclass
class AtomtraceConfig:
    """Complete atomtrace configuration from ``.atomtrace.yml``."""

    project: ProjectConfig
    """Project configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    """Storage configuration."""

    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    """Metrics configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""

    @property
    def root_path(self) -> Path:
        return Path(self.project.root)

    def resolve_records_file(self, records: str | None = None) -> Path | None:
        """Resolve an explicit records path, else the configured default."""
        chosen = records or self.metrics.records_file
        if not chosen:
            return None
        candidate = Path(chosen)
        return candidate if candidate.is_absolute() else self.root_path / candidate


def load_config(root: str | Path) -> AtomtraceConfig:
    """Load and parse the ``.atomtrace.yml`` configuration.

    Falls back to defaults when the YAML file is missing or incomplete.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If a numeric setting is not a number.
    """
    root_path = Path(root).resolve()
    config_yml = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_yml.is_file():
        text = config_yml.read_text(encoding="utf-8")
        parsed = yaml.safe_load(text)
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: top level is not a mapping", config_yml)

    project_raw = _section(raw, "project")
    project_root = Path(str(project_raw.get("root", root_path)))
    if not project_root.is_absolute():
        project_root = (root_path / project_root).resolve()
    project = ProjectConfig(
        root=str(project_root),
        project_id=str(project_raw.get("project_id") or ""),
    )

    storage_raw = _section(raw, "storage")
    storage = StorageConfig(
        data_dir=str(storage_raw.get("data_dir", DEFAULT_DATA_DIR)),
        history_page_size=int(storage_raw.get("history_page_size", DEFAULT_HISTORY_PAGE_SIZE)),
    )

    metrics_raw = _section(raw, "metrics")
    metrics = MetricsConfig(
        trend_period=str(metrics_raw.get("trend_period", DEFAULT_TREND_PERIOD)),
        records_file=str(metrics_raw.get("records_file") or ""),
    )

    return AtomtraceConfig(project=project, storage=storage, metrics=metrics, raw=raw)


def validate_config(config: AtomtraceConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.project.root:
        errors.append("project.root is required")

    if not config.storage.data_dir.strip():
        errors.append("storage.data_dir must not be empty")

    if config.storage.history_page_size <= 0:
        errors.append(
            f"storage.history_page_size must be positive "
            f"(got: {config.storage.history_page_size})"
        )

    if config.metrics.trend_period not in TREND_PERIODS:
        errors.append(
            f"metrics.trend_period must be one of {', '.join(TREND_PERIODS)} "
            f"(got: {config.metrics.trend_period})"
        )

    return errors
