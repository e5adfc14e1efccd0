"""CSV exporter writing one quoted row per issue."""

from __future__ import annotations

import csv
import os
from pathlib import Path

from ...errors import SinkError
from ..fetcher import Issue
from .base import BaseExporter, serialize_fields

CSV_HEADER = ("ID", "Key", "Fields")


class CSVExporter(BaseExporter):
    """Write issues to ``path``, replacing any previous file.

    Rows go to a sibling ``.tmp`` file that is moved over ``path`` on ``close``,
    so a failed run leaves the previous export untouched.
    """

    name = "csv"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self._tmp_path.open("w", encoding="utf-8", newline="")
            self._writer = csv.writer(self._file, quoting=csv.QUOTE_ALL)
            self._writer.writerow(CSV_HEADER)
        except (OSError, csv.Error) as exc:
            raise SinkError(self.name, exc) from exc

    def export(self, issue: Issue) -> None:
        try:
            self._writer.writerow((issue.id, issue.key, serialize_fields(issue)))
        except (OSError, csv.Error, TypeError, ValueError) as exc:
            raise SinkError(self.name, exc) from exc

    def flush(self) -> None:
        try:
            self._file.flush()
        except OSError as exc:
            raise SinkError(self.name, exc) from exc

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            self._file.close()
            os.replace(self._tmp_path, self.path)
        except OSError as exc:
            raise SinkError(self.name, exc) from exc

    def discard(self) -> None:
        if not self._file.closed:
            self._file.close()
        self._tmp_path.unlink(missing_ok=True)


__all__ = ["CSV_HEADER", "CSVExporter"]
