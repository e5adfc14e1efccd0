"""Single-consumer drain of fetched pages into one unordered issue collection."""

from __future__ import annotations

from queue import Queue
from typing import Iterable

from .fetcher import Issue

END_OF_RESULTS = object()


class ResultAggregator:
    """Collect issues from every page put on ``results`` until ``END_OF_RESULTS``.

    The aggregator is the only writer of the collection. ``run`` returns it as a
    tuple once the end marker has been read, so callers never see a list that is
    still being appended to.
    """

    def __init__(self, results: Queue, seed: Iterable[Issue] = ()) -> None:
        self._results = results
        self._issues: list[Issue] = list(seed)
        self.pages_drained = 0

    def run(self) -> tuple[Issue, ...]:
        while True:
            page = self._results.get()
            if page is END_OF_RESULTS:
                break
            self._issues.extend(page.issues)
            self.pages_drained += 1
        return tuple(self._issues)


__all__ = ["END_OF_RESULTS", "ResultAggregator"]
