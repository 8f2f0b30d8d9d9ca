"""Port for the ephemeral import plan store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lapsync.domain.model import ImportPlan, PlanRequest


@dataclass(frozen=True, slots=True)
class StoredPlan:
    """A stored request and, while its TTL has not elapsed, the computed plan."""

    plan_id: str
    request: PlanRequest
    plan: ImportPlan | None


@runtime_checkable
class PlanStore(Protocol):
    def save(self, plan: ImportPlan, request: PlanRequest) -> None: ...

    def get(self, plan_id: str) -> StoredPlan | None:
        """Return ``None`` for unknown ids; ``plan`` is ``None`` once the plan expired."""
        ...
