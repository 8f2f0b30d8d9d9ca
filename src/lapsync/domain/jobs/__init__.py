"""Import job queue and worker."""

from __future__ import annotations

from .queue import ImportJobQueue, JobItemInput, compute_plan_hash
from .runner import ImportJobRunner, progress_pct

__all__ = [
    "ImportJobQueue",
    "ImportJobRunner",
    "JobItemInput",
    "compute_plan_hash",
    "progress_pct",
]
