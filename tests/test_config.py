"""Tests for promptscan.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from promptscan.config import ConfigError, LLMConfig, ScanConfig, load_config
from promptscan.models import ScanBudget


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ScanConfig)
    assert config.budget == ScanBudget()
    assert config.ignore_dirs == []
    assert config.exclude_paths == []
    assert config.extractor.python is None
    assert config.extractor.timeout is None
    assert config.llm is None
    assert config.source is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".promptscan.yml"
    config_file.write_text(
        """
budget:
  max_files: 500
  max_tree_depth: 4
  max_findings_total: 50
ignore_dirs: [vendor, third_party]
exclude_paths:
  - "fixtures/"
extractor:
  python: "/usr/bin/python3"
  timeout: 30
llm:
  model: "gpt-4o-mini"
  base_url: "http://localhost:12434/engines/v1"
  api_key: "test-key"
  temperature: 0.15
  max_tokens: 256
  request_timeout: 60
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.source == config_file.resolve()
    assert config.budget.max_files == 500
    assert config.budget.max_tree_depth == 4
    assert config.budget.max_findings_total == 50
    assert config.budget.max_tree_nodes == ScanBudget().max_tree_nodes
    assert config.ignore_dirs == ["vendor", "third_party"]
    assert config.exclude_paths == ["fixtures/"]
    assert config.extractor.python == "/usr/bin/python3"
    assert config.extractor.timeout == pytest.approx(30.0)

    assert isinstance(config.llm, LLMConfig)
    assert config.llm.model == "gpt-4o-mini"
    assert config.llm.base_url == "http://localhost:12434/engines/v1"
    assert config.llm.api_key == "test-key"
    assert config.llm.temperature == pytest.approx(0.15)
    assert config.llm.max_tokens == 256
    assert config.llm.request_timeout == pytest.approx(60.0)


def test_load_config_accepts_explicit_file(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("ignore_dirs: generated\n", encoding="utf-8")

    config = load_config(config_file)

    assert config.ignore_dirs == ["generated"]


def test_empty_config_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".promptscan.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.budget == ScanBudget()


def test_non_mapping_root_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".promptscan.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_negative_budget_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".promptscan.yml").write_text("budget:\n  max_files: -1\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="budget.max_files"):
        load_config(tmp_path)


def test_invalid_yaml_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".promptscan.yml").write_text("budget: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
