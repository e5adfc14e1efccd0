"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    SpinnerColumn,
)
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    success: int = 0
    failed: int = 0


class PageRateColumn(ProgressColumn):
    """Render fetched pages per second."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} page/s", style="progress.percentage")


class PageProgress:
    """Render page progress and keep success/failure counters.

    ``advance`` is called from worker threads, so counters are guarded by a lock.
    Falls back to counting silently when disabled or when stdout is not a terminal.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()
        self.state: ProgressState | None = None
        self._label = "issues"

    def set_label(self, label: str) -> None:
        self._label = label

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            # Not a terminal: count silently
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<12}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            PageRateColumn(),
            TextColumn("[green]✓{task.fields[success]:>4}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>4}", justify="right"),
            console=self._console,
            transient=True,
            refresh_per_second=8,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "pages", total=total, label=self._label, success=0, failed=0
        )

    def advance(self, ok: bool = True) -> None:
        if not self.state:
            raise RuntimeError("PageProgress.start must be called before advance")
        with self._lock:
            if ok:
                self.state.success += 1
            else:
                self.state.failed += 1
            metrics = {"success": self.state.success, "failed": self.state.failed}
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, advance=1, **metrics)

    def page_done(self, offset: int, ok: bool) -> None:
        """Adapter matching the worker pool's ``on_page(offset, ok)`` callback."""

        self.advance(ok=ok)

    def close(self) -> None:
        if self._progress is not None:
            try:
                self._progress.stop()
            finally:
                self._progress.__exit__(None, None, None)
                self._progress = None
        self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"success": 0, "failed": 0}
        return {"success": self.state.success, "failed": self.state.failed}


__all__ = ["PageProgress", "PageRateColumn", "ProgressState"]
