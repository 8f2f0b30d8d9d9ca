"""Import planning: sizing, guardrails and plan application."""

from __future__ import annotations

from .builder import ImportPlanBuilder, derive_status, estimate_counts, reported_lap_total
from .guardrails import check_guardrails, chunk_count
from .heuristics import build_heuristic_summary, scaled_totals
from .service import ImportPlanService

__all__ = [
    "ImportPlanBuilder",
    "ImportPlanService",
    "build_heuristic_summary",
    "check_guardrails",
    "chunk_count",
    "derive_status",
    "estimate_counts",
    "reported_lap_total",
    "scaled_totals",
]
