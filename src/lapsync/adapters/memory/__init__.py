"""In-memory adapters implementing the persistence and plan-store ports."""

from __future__ import annotations

from .plan_store import InMemoryPlanStore
from .repositories import (
    InMemoryEntrantRepository,
    InMemoryEventRepository,
    InMemoryImportJobRepository,
    InMemoryLapRepository,
    InMemoryRaceClassRepository,
    InMemorySessionRepository,
    InMemoryTables,
)
from .unit_of_work import InMemoryDatabase, InMemoryJobUnitOfWork, InMemoryRaceUnitOfWork

__all__ = [
    "InMemoryDatabase",
    "InMemoryEntrantRepository",
    "InMemoryEventRepository",
    "InMemoryImportJobRepository",
    "InMemoryJobUnitOfWork",
    "InMemoryLapRepository",
    "InMemoryPlanStore",
    "InMemoryRaceClassRepository",
    "InMemoryRaceUnitOfWork",
    "InMemorySessionRepository",
    "InMemoryTables",
]
