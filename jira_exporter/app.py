"""Typer CLI entrypoint for jira-exporter."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .config import ConfigRepository, ExportConfig
from .engine import plan_offsets
from .errors import FirstPageError
from .logging_conf import configure_logging, log_file_path, tail_log
from .orchestrator import ExportSummary, IssueExporter
from .ui import PageProgress

app = typer.Typer(
    help="Export every issue of a Jira project to CSV and SQLite.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Inspect or create the stored export configuration.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect exporter log files.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

ExporterFactory = Callable[[ExportConfig, Optional[PageProgress]], IssueExporter]


@dataclass
class AppState:
    repository: ConfigRepository
    exporter_factory: ExporterFactory


def _default_exporter_factory(config: ExportConfig, progress: PageProgress | None) -> IssueExporter:
    return IssueExporter(config, progress=progress)


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose)
    return AppState(repository=repository, exporter_factory=_default_exporter_factory)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _parse_headers(values: list[str] | None) -> dict[str, str] | None:
    if not values:
        return None
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise BadParameter(f"Header must look like 'Name: value', got {raw!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "****"
    return value[:4] + "…" + value[-2:]


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _load_config(state: AppState, config_path: Path | None, overrides: dict) -> ExportConfig:
    try:
        config = state.repository.load(config_path, overrides)
    except FileNotFoundError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2) from exc
    except (ValidationError, ValueError) as exc:
        console.print(f"Invalid export configuration:\n{exc}", style="red")
        raise typer.Exit(code=2) from exc
    base_dir = state.repository.locator.project_root
    csv_path, db_path = config.resolved_paths(base_dir)
    return config.model_copy(update={"csv_path": csv_path, "db_path": db_path})


def _render_summary(summary: ExportSummary) -> Table:
    table = Table(title=f"{summary.project_key} export", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right", overflow="fold")
    table.add_row("Total reported", str(summary.total))
    table.add_row("Pages planned", str(summary.planned_pages))
    table.add_row("Pages fetched", str(summary.pages_fetched))
    table.add_row("Issues exported", str(summary.record_count))
    if summary.failed_offsets:
        table.add_row(
            "Dropped pages (startAt)",
            ", ".join(str(offset) for offset in summary.failed_offsets),
            style="red",
        )
    for sink in summary.sinks:
        status = f"{sink.rows} rows → {sink.path}" if sink.ok else f"FAILED: {sink.error}"
        table.add_row(f"{sink.name} sink", status, style=None if sink.ok else "red")
    return table


app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True)
) -> None:
    ctx.obj = build_state(verbose)


@app.command("export", help="Fetch every issue of the project and write both sinks.")
def export(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON export config file."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Search endpoint, e.g. https://jira/rest/api/2/search."),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project key to export."),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Target CSV file (overwritten)."),
    db_path: Optional[Path] = typer.Option(None, "--db", help="Target SQLite database file."),
    table: Optional[str] = typer.Option(None, "--table", help="SQLite table name."),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help="Extra request header 'Name: value'; repeatable."),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Issues requested per page."),
    workers: Optional[int] = typer.Option(None, "--workers", help="Concurrent page fetchers."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-request timeout in seconds."),
    retries: Optional[int] = typer.Option(None, "--retries", help="Retries per page before it is dropped."),
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result only.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    overrides = {
        "base_url": base_url,
        "project_key": project,
        "csv_path": csv_path.resolve() if csv_path else None,
        "db_path": db_path.resolve() if db_path else None,
        "table_name": table,
        "headers": _parse_headers(header),
        "page_size": page_size,
        "workers": workers,
        "timeout": timeout,
        "retry_attempts": retries,
    }
    config = _load_config(state, config_path, overrides)
    progress = PageProgress(enabled=_progress_default_enabled() and not quiet, console=console)
    exporter = state.exporter_factory(config, progress)
    try:
        summary = exporter.run()
    except FirstPageError as exc:
        console.print(f"Export aborted, first page failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc

    if quiet:
        console.print(
            f"Exported {summary.record_count}/{summary.total} issues, "
            f"dropped pages {len(summary.failed_offsets)}, "
            f"sinks {'ok' if summary.ok else 'FAILED'}"
        )
    else:
        console.print(_render_summary(summary))
        if not summary.complete:
            console.print(
                "Some pages failed and were dropped; the export under-counts the reported total.",
                style="yellow",
            )
    if not summary.ok:
        raise typer.Exit(code=1)


@app.command("plan", help="Show the startAt offsets an export of TOTAL issues would request.")
def plan(
    total: int = typer.Argument(..., help="Total issue count reported by the source."),
    page_size: int = typer.Option(1000, "--page-size", help="Issues requested per page."),
) -> None:
    try:
        offsets = plan_offsets(total, page_size)
    except ValueError as exc:
        raise BadParameter(str(exc)) from exc
    console.print(f"{len(offsets)} page(s): " + (", ".join(str(o) for o in offsets) or "-"))


@config_app.command("show", help="Print the stored export configuration with header values masked.")
def config_show(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON export config file."),
) -> None:
    state = _get_state(ctx)
    config = _load_config(state, config_path, {})
    payload = config.model_dump(mode="json")
    payload["headers"] = {name: _mask(value) for name, value in config.headers.items()}
    console.print(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))


@config_app.command("init", help="Write a starter export configuration.")
def config_init(
    ctx: typer.Context,
    base_url: str = typer.Option(..., "--base-url", help="Search endpoint URL."),
    project: str = typer.Option(..., "--project", "-p", help="Project key to export."),
    table: str = typer.Option("issues", "--table", help="SQLite table name."),
    token_env: str = typer.Option(
        "JIRA_TOKEN", "--token-env", help="Environment variable holding the bearer token."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    target = state.repository.locator.export_config_path()
    if target.exists() and not force:
        console.print(f"{target} already exists; pass --force to overwrite.", style="yellow")
        raise typer.Exit(code=1)
    try:
        config = ExportConfig(
            base_url=base_url,
            project_key=project,
            table_name=table,
            headers={"Authorization": f"Bearer ${{{token_env}}}"},
        )
    except ValidationError as exc:
        console.print(f"Invalid export configuration:\n{exc}", style="red")
        raise typer.Exit(code=2) from exc
    path = state.repository.save(config)
    console.print(f"Wrote {path}", style="green")


@log_app.command("show", help="Print the most recent lines of the exporter log.")
def log_show(
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead.", is_flag=True),
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
) -> None:
    path = log_file_path("error.log" if errors else "exporter.log")
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines))


__all__ = ["AppState", "app", "build_state"]
