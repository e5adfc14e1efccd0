"""Engine components orchestrating fetch → plan → pool → aggregate → export."""

from .aggregator import END_OF_RESULTS, ResultAggregator
from .fetcher import Issue, Page, PageFetcher
from .planner import page_count, plan_offsets
from .thread_pool import PageWorkerPool, PoolOutcome

__all__ = [
    "END_OF_RESULTS",
    "Issue",
    "Page",
    "PageFetcher",
    "PageWorkerPool",
    "PoolOutcome",
    "ResultAggregator",
    "page_count",
    "plan_offsets",
]
