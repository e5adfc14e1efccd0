from __future__ import annotations

from queue import Queue
from threading import Thread

from jira_exporter.engine import END_OF_RESULTS, Issue, Page, ResultAggregator


def _page(start: int, count: int) -> Page:
    issues = tuple(Issue(id=str(start + i), key=f"DEMO-{start + i}") for i in range(count))
    return Page(start_at=start, total=100, issues=issues)


def test_aggregator_collects_pages_in_any_order() -> None:
    results: Queue = Queue(maxsize=2)
    seed = _page(0, 3).issues
    aggregator = ResultAggregator(results, seed=seed)

    def produce() -> None:
        for start in (30, 10, 20):
            results.put(_page(start, 3))
        results.put(END_OF_RESULTS)

    producer = Thread(target=produce)
    producer.start()
    issues = aggregator.run()
    producer.join()

    assert isinstance(issues, tuple)
    assert len(issues) == 12
    assert {issue.id for issue in issues} == {str(n) for s in (0, 10, 20, 30) for n in range(s, s + 3)}
    assert aggregator.pages_drained == 3


def test_aggregator_with_no_pages_returns_seed() -> None:
    results: Queue = Queue()
    results.put(END_OF_RESULTS)
    assert ResultAggregator(results).run() == ()
