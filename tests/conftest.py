"""Shared fixtures: a fake search endpoint served through ``httpx.MockTransport``."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable

import httpx
import pytest

from jira_exporter.config import ConfigLocator, ConfigRepository, ExportConfig

SEARCH_URL = "https://jira.example.com/rest/api/2/search"


def make_issue(index: int, project: str = "DEMO") -> dict[str, Any]:
    return {
        "id": str(10000 + index),
        "key": f"{project}-{index + 1}",
        "fields": {
            "summary": f"Issue number {index}",
            "priority": {"name": "High", "id": "2"},
            "labels": ["backend", "export"],
            "storyPoints": 3,
            "flagged": False,
            "resolution": None,
        },
    }


class FakeJira:
    """Serve ``total`` issues page by page; selected offsets answer with errors."""

    def __init__(
        self,
        total: int,
        fail_offsets: Iterable[int] = (),
        flaky_offsets: Iterable[int] = (),
        project: str = "DEMO",
    ) -> None:
        self.issues = [make_issue(i, project) for i in range(total)]
        self.fail_offsets = set(fail_offsets)
        # Offsets that fail once, then succeed
        self.flaky_offsets = set(flaky_offsets)
        self.requests: list[httpx.Request] = []
        self._lock = Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        start = int(request.url.params["startAt"])
        size = int(request.url.params["maxResults"])
        with self._lock:
            self.requests.append(request)
            if start in self.flaky_offsets:
                self.flaky_offsets.discard(start)
                return httpx.Response(503, json={"errorMessages": ["try again"]})
        if start in self.fail_offsets:
            return httpx.Response(500, json={"errorMessages": ["boom"]})
        return httpx.Response(
            200,
            json={
                "expand": "schema,names",
                "startAt": start,
                "maxResults": size,
                "total": len(self.issues),
                "issues": self.issues[start : start + size],
            },
        )

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def requested_offsets(self) -> list[int]:
        return sorted(int(req.url.params["startAt"]) for req in self.requests)


@pytest.fixture
def fake_jira() -> Callable[..., FakeJira]:
    return FakeJira


@pytest.fixture
def export_config(tmp_path: Path) -> Callable[..., ExportConfig]:
    def _builder(**overrides: Any) -> ExportConfig:
        base: dict[str, Any] = {
            "base_url": SEARCH_URL,
            "project_key": "DEMO",
            "headers": {"Authorization": "Bearer test-token"},
            "csv_path": tmp_path / "out" / "issues.csv",
            "db_path": tmp_path / "out" / "issues.db",
            "table_name": "demo_issues",
            "page_size": 1000,
            "workers": 12,
        }
        base.update(overrides)
        return ExportConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("JIRA_EXPORTER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
