"""Tests for config.py: .atomtrace.yml parsing and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from atomtrace.config import (
    CONFIG_FILENAME,
    AtomtraceConfig,
    MetricsConfig,
    ProjectConfig,
    StorageConfig,
    _resolve_dict,
    _resolve_env_vars,
    load_config,
    validate_config,
)


def _write_config(root: Path, data: Any) -> None:
    """Write .atomtrace.yml with given data."""
    (root / CONFIG_FILENAME).write_text(yaml.dump(data), encoding="utf-8")


# ── _resolve_env_vars / _resolve_dict ─────────────────────────────────


class TestResolveEnvVars:
    def test_resolves_existing_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ATOMTRACE_PROJECT", "billing")
        assert _resolve_env_vars("${ATOMTRACE_PROJECT}") == "billing"

    def test_missing_var_returns_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ATOMTRACE_MISSING", raising=False)
        assert _resolve_env_vars("id-${ATOMTRACE_MISSING}") == "id-"

    def test_no_vars_unchanged(self) -> None:
        assert _resolve_env_vars("plain text") == "plain text"

    def test_nested_dict_and_lists(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DIR", ".data")
        resolved = _resolve_dict({"a": {"b": "${DIR}"}, "c": ["${DIR}", 3], "d": 5})
        assert resolved == {"a": {"b": ".data"}, "c": [".data", 3], "d": 5}


# ── load_config ───────────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert config.project.root == str(tmp_path.resolve())
        assert config.project.project_id == ""
        assert config.storage.data_dir == ".atomtrace"
        assert config.storage.coverage_dir == ".atomtrace/coverage"
        assert config.storage.history_dir == ".atomtrace/history"
        assert config.storage.history_page_size == 20
        assert config.metrics.trend_period == "month"
        assert config.metrics.records_file == ""
        assert config.raw == {}

    def test_full_file(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            {
                "project": {"project_id": "billing"},
                "storage": {"data_dir": "var/trace", "history_page_size": 5},
                "metrics": {"trend_period": "quarter", "records_file": "records.yml"},
            },
        )

        config = load_config(tmp_path)

        assert config.project.project_id == "billing"
        assert config.storage.coverage_dir == "var/trace/coverage"
        assert config.storage.history_page_size == 5
        assert config.metrics.trend_period == "quarter"
        assert config.resolve_records_file() == config.root_path / "records.yml"

    def test_relative_root_resolved_against_config_dir(self, tmp_path: Path) -> None:
        (tmp_path / "app").mkdir()
        _write_config(tmp_path, {"project": {"root": "app"}})

        config = load_config(tmp_path)

        assert config.root_path == (tmp_path / "app").resolve()

    def test_env_vars_resolved(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ATOMTRACE_PROJECT_ID", "from-env")
        (tmp_path / CONFIG_FILENAME).write_text(
            "project:\n  project_id: ${ATOMTRACE_PROJECT_ID}\n", encoding="utf-8"
        )

        assert load_config(tmp_path).project.project_id == "from-env"

    def test_non_mapping_file_falls_back(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        _write_config(tmp_path, ["not", "a", "mapping"])

        with caplog.at_level("WARNING"):
            config = load_config(tmp_path)

        assert config.storage.data_dir == ".atomtrace"
        assert "not a mapping" in caplog.text

    def test_non_mapping_section_ignored(self, tmp_path: Path) -> None:
        _write_config(tmp_path, {"storage": "nope"})
        assert load_config(tmp_path).storage.data_dir == ".atomtrace"

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("project: [unclosed", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            load_config(tmp_path)

    def test_non_numeric_page_size_raises(self, tmp_path: Path) -> None:
        _write_config(tmp_path, {"storage": {"history_page_size": "lots"}})
        with pytest.raises(ValueError):
            load_config(tmp_path)


class TestResolveRecordsFile:
    def _config(self, root: Path, records_file: str = "") -> AtomtraceConfig:
        return AtomtraceConfig(
            project=ProjectConfig(root=str(root)),
            metrics=MetricsConfig(records_file=records_file),
        )

    def test_none_when_unset(self, tmp_path: Path) -> None:
        assert self._config(tmp_path).resolve_records_file() is None

    def test_explicit_overrides_config(self, tmp_path: Path) -> None:
        config = self._config(tmp_path, "configured.yml")
        assert config.resolve_records_file("cli.yml") == tmp_path / "cli.yml"

    def test_absolute_kept(self, tmp_path: Path) -> None:
        absolute = tmp_path / "elsewhere" / "records.json"
        assert self._config(Path("/proj")).resolve_records_file(str(absolute)) == absolute


# ── validate_config ───────────────────────────────────────────────────


class TestValidateConfig:
    def test_defaults_are_valid(self, tmp_path: Path) -> None:
        assert validate_config(load_config(tmp_path)) == []

    def test_collects_all_errors(self) -> None:
        config = AtomtraceConfig(
            project=ProjectConfig(root=""),
            storage=StorageConfig(data_dir="  ", history_page_size=0),
            metrics=MetricsConfig(trend_period="year"),
        )

        errors = validate_config(config)

        assert len(errors) == 4
        assert "project.root is required" in errors
        assert any("storage.data_dir" in e for e in errors)
        assert any("history_page_size must be positive (got: 0)" in e for e in errors)
        assert any("week, month, quarter" in e for e in errors)
