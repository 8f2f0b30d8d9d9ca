"""Size limits applied to a plan before it is turned into a job."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from lapsync.domain.errors import GuardrailExceeded

if TYPE_CHECKING:
    from lapsync.config.jobs import GuardrailLimits
    from lapsync.domain.model import ImportPlan


def chunk_count(event_count: int, estimated_laps: int, limits: GuardrailLimits) -> int:
    """Smallest number of plans that would each fit within ``limits``."""

    ratio = max(event_count / limits.max_events, estimated_laps / limits.max_estimated_laps)
    return max(1, math.ceil(ratio))


def check_guardrails(plan: ImportPlan, limits: GuardrailLimits) -> None:
    event_count = plan.event_count
    estimated_laps = plan.estimated_laps
    if event_count <= limits.max_events and estimated_laps <= limits.max_estimated_laps:
        return

    raise GuardrailExceeded(
        "Selected LiveRC events exceed import guardrails.",
        details={
            "eventCount": event_count,
            "estimatedLaps": estimated_laps,
            "limits": {
                "maxEvents": limits.max_events,
                "maxEstimatedLaps": limits.max_estimated_laps,
            },
            "overage": {
                "events": max(0, event_count - limits.max_events),
                "estimatedLaps": max(0, estimated_laps - limits.max_estimated_laps),
            },
            "suggestions": {
                "chunkCount": chunk_count(event_count, estimated_laps, limits),
            },
        },
    )
