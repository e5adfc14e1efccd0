"""Bounded worker pool fetching pages concurrently."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from queue import Full, Queue
from threading import Event, Lock
from typing import Callable, Iterable

import structlog

from ..config.models import DEFAULT_QUEUE_SIZE, DEFAULT_WORKERS
from ..errors import PageFetchError
from .aggregator import END_OF_RESULTS, ResultAggregator
from .fetcher import Issue, Page, PageFetcher

_STOP = None
_PUT_POLL_SECONDS = 0.1

PageCallback = Callable[[int, bool], None]


@dataclass(frozen=True, slots=True)
class PoolOutcome:
    """Frozen result of one pool run."""

    issues: tuple[Issue, ...]
    pages_fetched: int
    failed_offsets: tuple[int, ...]


class PageWorkerPool:
    """Fetch offsets with a fixed number of workers and aggregate the pages.

    One feeder task puts offsets on a bounded job queue, ``workers`` tasks fetch
    them and put pages on a bounded result queue, and one aggregator task drains
    that queue. ``run`` returns only after the feeder, every worker and the
    aggregator have finished.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        workers: int = DEFAULT_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        retry_attempts: int = 0,
        on_page: PageCallback | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        self.fetcher = fetcher
        self.workers = workers
        self.queue_size = queue_size
        self.retry_attempts = retry_attempts
        self.on_page = on_page
        self.logger = logger or structlog.get_logger("jira_exporter.pool")
        self._cancelled = Event()
        self._failed: list[int] = []
        self._failed_lock = Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop dispatching offsets; workers skip whatever is still queued.

        Applies to the running ``run`` call, or to the next one when idle.
        """

        self._cancelled.set()

    def run(self, offsets: Iterable[int], seed: Iterable[Issue] = ()) -> PoolOutcome:
        with self._failed_lock:
            self._failed = []
        try:
            return self._run(offsets, seed)
        finally:
            self._cancelled.clear()

    def _run(self, offsets: Iterable[int], seed: Iterable[Issue]) -> PoolOutcome:
        jobs: Queue = Queue(maxsize=self.queue_size)
        results: Queue = Queue(maxsize=self.queue_size)
        aggregator = ResultAggregator(results, seed=seed)
        with ThreadPoolExecutor(
            max_workers=self.workers + 2, thread_name_prefix="page-worker"
        ) as executor:
            drained = executor.submit(aggregator.run)
            workers = [executor.submit(self._work, jobs, results) for _ in range(self.workers)]
            feeder = executor.submit(self._feed, offsets, jobs)
            try:
                feeder.result()
                for future in workers:
                    future.result()
            except BaseException:
                self.cancel()
                wait([feeder, *workers])
                raise
            finally:
                # Workers are done: nothing else can be put on ``results``
                results.put(END_OF_RESULTS)
            issues = drained.result()
        with self._failed_lock:
            failed = tuple(sorted(self._failed))
        return PoolOutcome(
            issues=issues,
            pages_fetched=aggregator.pages_drained,
            failed_offsets=failed,
        )

    # ------------------------------------------------------------------
    def _feed(self, offsets: Iterable[int], jobs: Queue) -> None:
        try:
            for offset in offsets:
                if not self._put_job(jobs, offset):
                    break
        finally:
            # Workers keep consuming until they see a stop marker, so this cannot block forever
            for _ in range(self.workers):
                jobs.put(_STOP)

    def _put_job(self, jobs: Queue, offset: int) -> bool:
        while not self._cancelled.is_set():
            try:
                jobs.put(offset, timeout=_PUT_POLL_SECONDS)
                return True
            except Full:
                continue
        return False

    def _work(self, jobs: Queue, results: Queue) -> None:
        while True:
            offset = jobs.get()
            if offset is _STOP:
                return
            if self._cancelled.is_set():
                self.logger.info("page_skipped_cancelled", start_at=offset)
                self._record_failure(offset)
                continue
            page = self._fetch(offset)
            if page is None:
                self._record_failure(offset)
                continue
            results.put(page)
            self._notify(offset, ok=True)

    def _fetch(self, offset: int) -> Page | None:
        attempt = 0
        while True:
            attempt += 1
            try:
                return self.fetcher.fetch(offset)
            except PageFetchError as exc:
                if attempt > self.retry_attempts or self._cancelled.is_set():
                    self.logger.warning(
                        "page_fetch_failed",
                        start_at=offset,
                        attempts=attempt,
                        error=str(exc.cause),
                    )
                    return None
                self.logger.info(
                    "page_fetch_retry", start_at=offset, attempt=attempt, error=str(exc.cause)
                )
            except Exception:  # noqa: BLE001
                self.logger.exception("page_fetch_unexpected_error", start_at=offset)
                return None

    def _record_failure(self, offset: int) -> None:
        with self._failed_lock:
            self._failed.append(offset)
        self._notify(offset, ok=False)

    def _notify(self, offset: int, ok: bool) -> None:
        if self.on_page is None:
            return
        try:
            self.on_page(offset, ok)
        except Exception:  # noqa: BLE001
            self.logger.debug("page_callback_failed", start_at=offset)


__all__ = ["PageCallback", "PageWorkerPool", "PoolOutcome"]
