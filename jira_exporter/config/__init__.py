"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_WORKERS,
    ExportConfig,
    is_sql_identifier,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_QUEUE_SIZE",
    "DEFAULT_WORKERS",
    "ExportConfig",
    "is_sql_identifier",
]
