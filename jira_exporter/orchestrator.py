"""Export orchestrator wiring together first-page fetch, worker pool and both sinks."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Mapping

import httpx
import structlog

from .config import ExportConfig
from .config.models import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
)
from .engine import Issue, PageFetcher, PageWorkerPool, plan_offsets
from .engine.exporter import BaseExporter, CSVExporter, SQLiteExporter
from .errors import FirstPageError, PageFetchError, SinkError
from .ui import PageProgress


@dataclass(slots=True)
class SinkResult:
    """Outcome of writing the aggregate to one sink."""

    name: str
    path: Path
    ok: bool
    rows: int = 0
    error: str | None = None


@dataclass(slots=True)
class ExportSummary:
    """What one export run fetched and where it landed."""

    project_key: str
    total: int
    planned_pages: int
    pages_fetched: int
    record_count: int
    failed_offsets: tuple[int, ...] = ()
    sinks: list[SinkResult] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_offsets

    @property
    def ok(self) -> bool:
        return all(sink.ok for sink in self.sinks)

    def sink(self, name: str) -> SinkResult | None:
        return next((sink for sink in self.sinks if sink.name == name), None)

    def as_dict(self) -> dict:
        payload = asdict(self)
        payload["failed_offsets"] = list(self.failed_offsets)
        for sink in payload["sinks"]:
            sink["path"] = str(sink["path"])
        payload["complete"] = self.complete
        payload["ok"] = self.ok
        return payload


class IssueExporter:
    """Central coordinator for one project export."""

    def __init__(
        self,
        config: ExportConfig,
        client: httpx.Client | None = None,
        progress: PageProgress | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.progress = progress
        self.logger = (logger or structlog.get_logger("jira_exporter.orchestrator")).bind(
            project=config.project_key
        )

    def run(self) -> ExportSummary:
        """Fetch every page, then attempt both sinks on the frozen aggregate.

        Raises ``FirstPageError`` when offset 0 cannot be fetched; in that case no
        page is dispatched and neither sink is touched. Sink failures are reported
        in the returned summary instead of being raised.
        """

        cfg = self.config
        self.logger.info("export_started", base_url=cfg.base_url, page_size=cfg.page_size)
        with PageFetcher(
            cfg.base_url,
            cfg.project_key,
            headers=cfg.headers,
            page_size=cfg.page_size,
            timeout=cfg.timeout,
            client=self.client,
        ) as fetcher:
            try:
                first_page = fetcher.fetch(0)
            except PageFetchError as exc:
                self.logger.error("first_page_failed", error=str(exc.cause))
                raise FirstPageError(str(exc)) from exc

            offsets = plan_offsets(first_page.total, cfg.page_size)
            self.logger.info("total_issues", total=first_page.total, pages=len(offsets))
            self._progress_start(len(offsets))
            pool = PageWorkerPool(
                fetcher,
                workers=cfg.workers,
                queue_size=cfg.queue_size,
                retry_attempts=cfg.retry_attempts,
                on_page=self.progress.page_done if self.progress else None,
            )
            try:
                # Offset 0 is already in hand; only the rest goes through the pool
                outcome = pool.run(offsets[1:], seed=first_page.issues)
            finally:
                if self.progress is not None:
                    self.progress.close()

        issues = outcome.issues
        if outcome.failed_offsets or len(issues) < first_page.total:
            self.logger.warning(
                "export_incomplete",
                total=first_page.total,
                exported=len(issues),
                failed_offsets=list(outcome.failed_offsets),
            )

        sinks = [
            self._persist(cfg.csv_path, lambda: CSVExporter(cfg.csv_path), issues),
            self._persist(cfg.db_path, lambda: SQLiteExporter(cfg.db_path, cfg.table_name), issues),
        ]
        summary = ExportSummary(
            project_key=cfg.project_key,
            total=first_page.total,
            planned_pages=len(offsets),
            pages_fetched=outcome.pages_fetched + (1 if offsets else 0),
            record_count=len(issues),
            failed_offsets=outcome.failed_offsets,
            sinks=sinks,
        )
        if summary.ok:
            self.logger.info("export_completed", records=summary.record_count)
        else:
            self.logger.error(
                "export_sinks_failed",
                failed=[sink.name for sink in sinks if not sink.ok],
            )
        return summary

    # ------------------------------------------------------------------
    def _progress_start(self, planned_pages: int) -> None:
        if self.progress is None:
            return
        self.progress.set_label(self.config.project_key)
        self.progress.start(planned_pages)
        if planned_pages:
            self.progress.advance(ok=True)

    def _persist(
        self, path: Path, build: Callable[[], BaseExporter], issues: tuple[Issue, ...]
    ) -> SinkResult:
        exporter: BaseExporter | None = None
        try:
            exporter = build()
            rows = exporter.export_all(issues)
            exporter.flush()
            exporter.close()
        except SinkError as exc:
            if exporter is not None:
                try:
                    exporter.discard()
                except Exception:  # noqa: BLE001
                    self.logger.debug("sink_discard_failed", sink=exc.sink)
            self.logger.error("sink_failed", sink=exc.sink, path=str(path), error=str(exc.cause))
            return SinkResult(name=exc.sink, path=path, ok=False, error=str(exc.cause))
        self.logger.info("sink_written", sink=exporter.name, path=str(path), rows=rows)
        return SinkResult(name=exporter.name, path=path, ok=True, rows=rows)


def export_issues(
    base_url: str,
    headers: Mapping[str, str],
    db_path: str | Path,
    project_key: str,
    csv_path: str | Path,
    table_name: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    workers: int = DEFAULT_WORKERS,
    queue_size: int = DEFAULT_QUEUE_SIZE,
    timeout: float = DEFAULT_TIMEOUT,
    retry_attempts: int = 0,
    client: httpx.Client | None = None,
    progress: PageProgress | None = None,
) -> ExportSummary:
    """Export every issue of ``project_key`` to ``csv_path`` and ``db_path``/``table_name``.

    ``headers`` are sent on every request exactly as given.
    """

    config = ExportConfig(
        base_url=base_url,
        project_key=project_key,
        headers=dict(headers),
        csv_path=csv_path,
        db_path=db_path,
        table_name=table_name,
        page_size=page_size,
        workers=workers,
        queue_size=queue_size,
        timeout=timeout,
        retry_attempts=retry_attempts,
    )
    return IssueExporter(config, client=client, progress=progress).run()


__all__ = ["ExportSummary", "IssueExporter", "SinkResult", "export_issues"]
