"""Exporter SPI and implementations."""

from .base import BaseExporter, serialize_fields
from .file_exporter import CSV_HEADER, CSVExporter
from .sqlite_exporter import SQLiteExporter

__all__ = ["BaseExporter", "CSV_HEADER", "CSVExporter", "SQLiteExporter", "serialize_fields"]
