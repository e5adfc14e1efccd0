"""User interface helpers (progress rendering)."""

from .progress import PageProgress, ProgressState

__all__ = ["PageProgress", "ProgressState"]
