"""Upsert issues into an SQLite table keyed by issue id."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

from ...config.models import is_sql_identifier
from ...errors import SinkError
from ..fetcher import Issue
from .base import BaseExporter, serialize_fields


class SQLiteExporter(BaseExporter):
    """Persist issues as ``(id, key, fields)`` rows with insert-or-replace semantics."""

    name = "sqlite"

    def __init__(self, path: Path, table: str = "issues") -> None:
        if not is_sql_identifier(table):
            raise SinkError(self.name, f"invalid table name {table!r}")
        self.path = Path(path)
        self.table = table
        # Quoted so identifiers that are also keywords (order, group) still work
        self._quoted_table = f'"{table}"'
        self.conn: sqlite3.Connection | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.path)
            self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._quoted_table} (
                    id TEXT PRIMARY KEY,
                    key TEXT,
                    fields TEXT
                )
                """
            )
            self.conn.commit()
        except (OSError, sqlite3.Error) as exc:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
            raise SinkError(self.name, exc) from exc

    def export(self, issue: Issue) -> None:
        try:
            self.conn.execute(
                f"INSERT OR REPLACE INTO {self._quoted_table} (id, key, fields) VALUES (?, ?, ?)",
                (issue.id, issue.key, serialize_fields(issue)),
            )
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise SinkError(self.name, exc) from exc

    def export_all(self, issues: Iterable[Issue]) -> int:
        # One transaction: either every row lands or the table is left as it was
        try:
            with self.conn:
                return super().export_all(issues)
        except sqlite3.Error as exc:
            raise SinkError(self.name, exc) from exc

    def flush(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.Error as exc:
            raise SinkError(self.name, exc) from exc

    def close(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.Error as exc:
            raise SinkError(self.name, exc) from exc
        finally:
            self.conn.close()

    def discard(self) -> None:
        try:
            self.conn.rollback()
        finally:
            self.conn.close()


__all__ = ["SQLiteExporter"]
