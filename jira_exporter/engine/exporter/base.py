"""Exporter Service Provider Interface."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Iterable

from ..fetcher import Issue


def serialize_fields(issue: Issue) -> str:
    """Encode the issue's field mapping as one JSON text cell."""

    return json.dumps(issue.fields, ensure_ascii=False)


class BaseExporter(ABC):
    """Uniform exporter contract over a frozen set of issues."""

    name: str = "exporter"

    @abstractmethod
    def export(self, issue: Issue) -> None:
        """Persist a single issue."""

    def export_all(self, issues: Iterable[Issue]) -> int:
        count = 0
        for issue in issues:
            self.export(issue)
            count += 1
        return count

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Make the written data visible and release underlying resources."""

    def discard(self) -> None:
        """Release resources after a failed write without publishing partial output."""

        self.close()


__all__ = ["BaseExporter", "serialize_fields"]
