"""Import plan value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from lapsync.domain.model.enums import PlanItemStatus


@dataclass(frozen=True, slots=True)
class PlanCounts:
    sessions: int
    drivers: int
    estimated_laps: int

    def as_payload(self) -> dict[str, int]:
        return {
            "sessions": self.sessions,
            "drivers": self.drivers,
            "estimatedLaps": self.estimated_laps,
        }


@dataclass(frozen=True, slots=True)
class ImportPlanItem:
    event_ref: str
    status: PlanItemStatus
    counts: PlanCounts

    def as_payload(self) -> dict[str, Any]:
        return {
            "eventRef": self.event_ref,
            "status": str(self.status),
            "counts": self.counts.as_payload(),
        }


@dataclass(frozen=True, slots=True)
class PlanRequest:
    """The original create-plan request, retained so expired plans can be rebuilt."""

    event_refs: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ImportPlan:
    plan_id: str
    generated_at: datetime
    items: tuple[ImportPlanItem, ...] = field(default_factory=tuple)

    @property
    def event_count(self) -> int:
        return len(self.items)

    @property
    def estimated_laps(self) -> int:
        return sum(item.counts.estimated_laps for item in self.items)

    def as_payload(self) -> dict[str, Any]:
        return {
            "planId": self.plan_id,
            "generatedAt": self.generated_at.isoformat(),
            "items": [item.as_payload() for item in self.items],
        }
