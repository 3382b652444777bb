"""Configuration loading for promptscan (.promptscan.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import ScanBudget

CONFIG_FILENAME = ".promptscan.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Narrative synthesis endpoint settings."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class ExtractorConfig:
    """Structural extractor process settings."""

    python: Optional[str] = None
    timeout: Optional[float] = None


@dataclass
class ScanConfig:
    """Represents the settings defined in .promptscan.yml."""

    budget: ScanBudget = field(default_factory=ScanBudget)
    ignore_dirs: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    llm: Optional[LLMConfig] = None
    source: Optional[Path] = None


def load_config(config_path: Path | str | None = None) -> ScanConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    if config_path is None:
        config_path = Path.cwd()
    config_file = _resolve_config_path(Path(config_path))

    if not config_file.exists():
        return ScanConfig()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    budget = _parse_budget(_as_dict(data.get("budget")))

    extractor_data = _as_dict(data.get("extractor"))
    extractor = ExtractorConfig(
        python=_as_str(extractor_data.get("python")),
        timeout=_as_float(extractor_data.get("timeout")),
    )

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )

    return ScanConfig(
        budget=budget,
        ignore_dirs=_as_str_list(data.get("ignore_dirs")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        extractor=extractor,
        llm=llm,
        source=config_file,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _parse_budget(data: Dict[str, Any]) -> ScanBudget:
    defaults = ScanBudget()
    values: Dict[str, int] = {}
    for item in fields(ScanBudget):
        raw = _as_int(data.get(item.name))
        if raw is None:
            values[item.name] = getattr(defaults, item.name)
            continue
        if raw < 0:
            raise ConfigError(f"budget.{item.name} must not be negative")
        values[item.name] = raw
    return ScanBudget(**values)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ExtractorConfig",
    "LLMConfig",
    "ScanConfig",
    "load_config",
]
