"""Exception hierarchy for the export pipeline."""

from __future__ import annotations


class ExporterError(Exception):
    """Base exception for all exporter failures."""


class PageFetchError(ExporterError):
    """A single page could not be fetched or decoded."""

    def __init__(self, offset: int, cause: BaseException | str) -> None:
        self.offset = offset
        self.cause = cause
        super().__init__(f"Failed to fetch page at startAt={offset}: {cause}")


class FirstPageError(ExporterError):
    """The first page failed, so the total issue count is unknown."""


class SinkError(ExporterError):
    """Writing the aggregate to one of the sinks failed."""

    def __init__(self, sink: str, cause: BaseException | str) -> None:
        self.sink = sink
        self.cause = cause
        super().__init__(f"{sink} sink failed: {cause}")


__all__ = ["ExporterError", "FirstPageError", "PageFetchError", "SinkError"]
