"""Configuration loading helpers for jira-exporter."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import ExportConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
EXPORT_CONFIG_FILENAME = "export_config.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _expand_header_env(payload: dict) -> dict:
    headers = payload.get("headers")
    if isinstance(headers, dict):
        # Tokens are kept out of the file as ${JIRA_TOKEN}-style references
        payload["headers"] = {
            name: os.path.expandvars(value) if isinstance(value, str) else value
            for name, value in headers.items()
        }
    return payload


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("JIRA_EXPORTER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def export_config_path(self) -> Path:
        return self.data_dir / EXPORT_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()

    def load(self, path: Path | None = None, overrides: dict | None = None) -> ExportConfig:
        """Load the export config, layering non-null ``overrides`` on top of the file.

        ``${VAR}`` references in header values read from the file are expanded
        from the environment; override values are used as given.
        """

        path = path or self.locator.export_config_path()
        payload: dict = {}
        if path.exists():
            payload = _expand_header_env(_read_file(path))
        elif path != self.locator.export_config_path():
            raise FileNotFoundError(f"Export configuration not found: {path}")
        for name, value in (overrides or {}).items():
            if value is None:
                continue
            if name == "headers":
                merged = dict(payload.get("headers") or {})
                merged.update(value)
                value = merged
            payload[name] = value
        return ExportConfig.model_validate(payload)

    def save(self, config: ExportConfig, path: Path | None = None) -> Path:
        path = path or self.locator.export_config_path()
        _write_file(path, config.model_dump(mode="json"))
        return path


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository"]
