"""Public domain model surface."""

from __future__ import annotations

from lapsync.domain.model.enums import (
    ImportMode,
    JobState,
    PlanItemStatus,
    SessionType,
    TargetType,
)
from lapsync.domain.model.jobs import (
    ImportJob,
    ImportJobItem,
    check_transition,
    clamp_progress,
    utcnow,
)
from lapsync.domain.model.plan import ImportPlan, ImportPlanItem, PlanCounts, PlanRequest
from lapsync.domain.model.racing import Entrant, Event, Lap, RaceClass, Session, new_id

__all__ = [
    "Entrant",
    "Event",
    "ImportJob",
    "ImportJobItem",
    "ImportMode",
    "ImportPlan",
    "ImportPlanItem",
    "JobState",
    "Lap",
    "PlanCounts",
    "PlanItemStatus",
    "PlanRequest",
    "RaceClass",
    "Session",
    "SessionType",
    "TargetType",
    "check_transition",
    "clamp_progress",
    "new_id",
    "utcnow",
]
