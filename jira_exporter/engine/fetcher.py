"""HTTP fetching of single search-result pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
import structlog
from pydantic import BaseModel, Field

from ..errors import PageFetchError


class Issue(BaseModel):
    """One issue as returned by the search endpoint."""

    id: str
    key: str
    fields: dict[str, Any] = Field(default_factory=dict)


class _SearchPayload(BaseModel):
    issues: list[Issue] = Field(default_factory=list)
    total: int


@dataclass(frozen=True, slots=True)
class Page:
    """Issues returned for one ``startAt`` offset plus the source's total count."""

    start_at: int
    total: int
    issues: tuple[Issue, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.issues)


class PageFetcher:
    """Perform one paginated read per call. Holds no state besides the HTTP client."""

    def __init__(
        self,
        base_url: str,
        project_key: str,
        headers: Mapping[str, str] | None = None,
        page_size: int = 1000,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.base_url = base_url
        self.project_key = project_key
        self.headers = dict(headers or {})
        self.page_size = page_size
        self.timeout = timeout
        self.logger = logger or structlog.get_logger("jira_exporter.fetcher")
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True, timeout=timeout)

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def build_params(self, offset: int) -> dict[str, str]:
        return {
            "jql": f"project={self.project_key}",
            "startAt": str(offset),
            "maxResults": str(self.page_size),
            "fields": "*all",
        }

    def fetch(self, offset: int) -> Page:
        """Fetch the page starting at ``offset``; raise ``PageFetchError`` on any failure."""

        self.logger.debug("fetching_page", start_at=offset)
        try:
            response = self._client.get(
                self.base_url,
                params=self.build_params(offset),
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = _SearchPayload.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            # ValidationError and JSONDecodeError are both ValueError subclasses
            raise PageFetchError(offset, exc) from exc
        return Page(start_at=offset, total=payload.total, issues=tuple(payload.issues))


__all__ = ["Issue", "Page", "PageFetcher"]
