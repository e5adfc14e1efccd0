"""Pydantic models describing an export run."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

DEFAULT_PAGE_SIZE = 1000
DEFAULT_WORKERS = 12
DEFAULT_QUEUE_SIZE = 10
DEFAULT_TIMEOUT = 30.0


def is_sql_identifier(name: str) -> bool:
    return _IDENTIFIER.fullmatch(name) is not None


class ExportConfig(BaseModel):
    """Everything needed to export one project into the CSV and SQLite sinks."""

    base_url: str
    project_key: str
    headers: dict[str, str] = Field(default_factory=dict)
    csv_path: Path = Field(default=Path("data/outputs/issues.csv"))
    db_path: Path = Field(default=Path("data/outputs/issues.db"))
    table_name: str = "issues"
    page_size: int = DEFAULT_PAGE_SIZE
    workers: int = DEFAULT_WORKERS
    queue_size: int = DEFAULT_QUEUE_SIZE
    timeout: float = DEFAULT_TIMEOUT
    retry_attempts: int = 0

    @field_validator("csv_path", "db_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("headers", mode="before")
    @classmethod
    def _coerce_headers(cls, value: Any) -> dict[str, str]:
        if value in (None, ""):
            return {}
        if not isinstance(value, dict):
            raise ValueError("headers expects a mapping of header name to value")
        return {str(name): str(val) for name, val in value.items()}

    @field_validator("table_name")
    @classmethod
    def _validate_table(cls, value: str) -> str:
        if not is_sql_identifier(value):
            raise ValueError(f"table_name must be a plain SQL identifier: {value!r}")
        return value

    @model_validator(mode="after")
    def _validate_limits(self) -> "ExportConfig":
        if not self.project_key.strip():
            raise ValueError("project_key cannot be empty")
        if not self.base_url.strip():
            raise ValueError("base_url cannot be empty")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.retry_attempts < 0:
            raise ValueError("retry_attempts must be >= 0")
        return self

    def resolved_paths(self, base_dir: Path) -> tuple[Path, Path]:
        """Return (csv_path, db_path) anchored at ``base_dir`` when relative."""

        def _anchor(path: Path) -> Path:
            return path if path.is_absolute() else (base_dir / path).resolve()

        return _anchor(self.csv_path), _anchor(self.db_path)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_QUEUE_SIZE",
    "DEFAULT_TIMEOUT",
    "DEFAULT_WORKERS",
    "ExportConfig",
    "is_sql_identifier",
]
