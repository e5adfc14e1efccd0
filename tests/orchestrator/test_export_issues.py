from __future__ import annotations

import csv
import sqlite3
from pathlib import Path

import pytest

from jira_exporter.orchestrator import IssueExporter, export_issues
from jira_exporter.errors import FirstPageError
from jira_exporter.ui import PageProgress


def _csv_rows(path: Path) -> list[list[str]]:
    with path.open(encoding="utf-8", newline="") as stream:
        return list(csv.reader(stream))


def _db_rows(path: Path, table: str) -> list[tuple]:
    conn = sqlite3.connect(path)
    try:
        return conn.execute(f"SELECT id, key FROM {table}").fetchall()
    finally:
        conn.close()


def test_export_fetches_every_page_once(fake_jira, export_config) -> None:
    source = fake_jira(total=2500)
    config = export_config()

    summary = IssueExporter(config, client=source.client()).run()

    assert source.requested_offsets() == [0, 1000, 2000]
    assert summary.total == 2500
    assert summary.planned_pages == 3
    assert summary.pages_fetched == 3
    assert summary.record_count == 2500
    assert summary.complete and summary.ok
    rows = _csv_rows(config.csv_path)
    assert rows[0] == ["ID", "Key", "Fields"]
    assert len(rows) == 2501
    assert {row[0] for row in rows[1:]} == {str(10000 + i) for i in range(2500)}
    assert len(_db_rows(config.db_path, "demo_issues")) == 2500
    assert summary.sink("csv").rows == summary.sink("sqlite").rows == 2500


def test_export_drops_failed_page_but_writes_both_sinks(fake_jira, export_config) -> None:
    source = fake_jira(total=2500, fail_offsets={1000})
    config = export_config()

    summary = IssueExporter(config, client=source.client()).run()

    assert summary.failed_offsets == (1000,)
    assert not summary.complete
    assert summary.ok
    assert summary.record_count == 1500
    assert len(_csv_rows(config.csv_path)) == 1501
    keys = {key for _, key in _db_rows(config.db_path, "demo_issues")}
    assert len(keys) == 1500
    assert "DEMO-1001" not in keys
    assert "DEMO-2001" in keys


def test_first_page_failure_aborts_without_writing(fake_jira, export_config) -> None:
    source = fake_jira(total=2500, fail_offsets={0})
    config = export_config()

    with pytest.raises(FirstPageError):
        IssueExporter(config, client=source.client()).run()

    assert source.requested_offsets() == [0]
    assert not config.csv_path.exists()
    assert not config.db_path.exists()


def test_empty_project_still_runs_persistence(fake_jira, export_config) -> None:
    source = fake_jira(total=0)
    config = export_config()

    summary = IssueExporter(config, client=source.client()).run()

    assert source.requested_offsets() == [0]
    assert summary.record_count == 0
    assert summary.planned_pages == 0
    assert _csv_rows(config.csv_path) == [["ID", "Key", "Fields"]]
    assert _db_rows(config.db_path, "demo_issues") == []


def test_csv_failure_does_not_block_sqlite(fake_jira, export_config, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file in the way", encoding="utf-8")
    config = export_config(csv_path=blocker / "issues.csv")

    summary = IssueExporter(config, client=fake_jira(total=15).client()).run()

    assert not summary.ok
    assert summary.sink("csv").ok is False
    assert summary.sink("csv").error
    assert summary.sink("sqlite").ok is True
    assert len(_db_rows(config.db_path, "demo_issues")) == 15


def test_sqlite_failure_does_not_block_csv(fake_jira, export_config, tmp_path: Path) -> None:
    db_dir = tmp_path / "db_is_a_directory"
    db_dir.mkdir()
    config = export_config(db_path=db_dir)

    summary = IssueExporter(config, client=fake_jira(total=15).client()).run()

    assert summary.sink("sqlite").ok is False
    assert summary.sink("csv").ok is True
    assert len(_csv_rows(config.csv_path)) == 16


def test_rerun_is_idempotent_per_issue_id(fake_jira, export_config) -> None:
    config = export_config(page_size=7, workers=3)
    source = fake_jira(total=40)
    IssueExporter(config, client=source.client()).run()
    IssueExporter(config, client=source.client()).run()
    assert len(_db_rows(config.db_path, "demo_issues")) == 40
    assert len(_csv_rows(config.csv_path)) == 41


def test_export_issues_entry_point(fake_jira, tmp_path: Path) -> None:
    source = fake_jira(total=12)
    progress = PageProgress(enabled=False)
    summary = export_issues(
        "https://jira.example.com/rest/api/2/search",
        {"Authorization": "Basic dXNlcjp0b2tlbg=="},
        tmp_path / "jira.db",
        "DEMO",
        tmp_path / "jira.csv",
        "jira_issues",
        client=source.client(),
        progress=progress,
        page_size=5,
        workers=2,
    )
    assert summary.record_count == 12
    assert source.requested_offsets() == [0, 5, 10]
    assert all(req.headers["Authorization"] == "Basic dXNlcjp0b2tlbg==" for req in source.requests)
    assert progress.summary() == {"success": 3, "failed": 0}
    assert summary.as_dict()["sinks"][0]["path"] == str(tmp_path / "jira.csv")


def test_export_issues_sends_headers_unchanged(fake_jira, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("abc", "EXPANDED")
    source = fake_jira(total=3)
    export_issues(
        "https://jira.example.com/rest/api/2/search",
        {"Authorization": "Basic pa$abc"},
        tmp_path / "jira.db",
        "DEMO",
        tmp_path / "jira.csv",
        "jira_issues",
        client=source.client(),
    )
    assert [req.headers["Authorization"] for req in source.requests] == ["Basic pa$abc"]


def test_export_issues_rejects_unknown_options(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        export_issues(
            "https://jira.example.com/rest/api/2/search",
            {},
            tmp_path / "jira.db",
            "DEMO",
            tmp_path / "jira.csv",
            "jira_issues",
            worker=4,
        )


def test_export_into_keyword_named_table(fake_jira, export_config) -> None:
    config = export_config(table_name="order")
    summary = IssueExporter(config, client=fake_jira(total=4).client()).run()
    assert summary.sink("sqlite").ok, summary.sink("sqlite").error
    assert len(_db_rows(config.db_path, '"order"')) == 4
