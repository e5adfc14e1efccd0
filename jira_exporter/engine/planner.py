"""Offset planning from the total count reported by the first page."""

from __future__ import annotations


def plan_offsets(total: int, page_size: int) -> list[int]:
    """Return ``0, page_size, 2*page_size, ...`` for every offset below ``total``."""

    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    if total < 0:
        raise ValueError("total must be >= 0")
    return list(range(0, total, page_size))


def page_count(total: int, page_size: int) -> int:
    return len(plan_offsets(total, page_size))


__all__ = ["page_count", "plan_offsets"]
