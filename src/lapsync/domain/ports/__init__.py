"""Domain ports (interfaces implemented by adapters)."""

from __future__ import annotations

from lapsync.domain.ports.persistence import (
    EntrantRepository,
    EntrantUpsert,
    EventRepository,
    EventState,
    EventUpsert,
    ImportJobRepository,
    LapRepository,
    RaceClassRepository,
    RaceClassUpsert,
    SessionRepository,
    SessionUpsert,
)
from lapsync.domain.ports.plan_store import PlanStore, StoredPlan
from lapsync.domain.ports.unit_of_work import (
    JobRepositories,
    JobUnitOfWork,
    RaceRepositories,
    RaceUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)
from lapsync.domain.ports.upstream import (
    EntryList,
    EntryListEntry,
    EventOverview,
    LapPenalty,
    RaceLap,
    RaceResult,
    SessionSummary,
    UpstreamClient,
)

__all__ = [
    "EntrantRepository",
    "EntrantUpsert",
    "EntryList",
    "EntryListEntry",
    "EventOverview",
    "EventRepository",
    "EventState",
    "EventUpsert",
    "ImportJobRepository",
    "JobRepositories",
    "JobUnitOfWork",
    "LapPenalty",
    "LapRepository",
    "PlanStore",
    "RaceClassRepository",
    "RaceClassUpsert",
    "RaceLap",
    "RaceRepositories",
    "RaceResult",
    "RaceUnitOfWork",
    "RepositoryCollection",
    "SessionRepository",
    "SessionSummary",
    "SessionUpsert",
    "StoredPlan",
    "UnitOfWork",
    "UpstreamClient",
]
