"""Build import plans: per-event status and size estimates."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from lapsync.domain.model import (
    ImportPlan,
    ImportPlanItem,
    PlanCounts,
    PlanItemStatus,
    utcnow,
)
from lapsync.domain.references import parse_event_reference

from .heuristics import build_heuristic_summary, scaled_totals

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from lapsync.domain.model import PlanRequest
    from lapsync.domain.ports.persistence import EventState
    from lapsync.domain.ports.unit_of_work import RaceUnitOfWork
    from lapsync.domain.ports.upstream import EventOverview, SessionSummary, UpstreamClient
    from lapsync.domain.references import EventReference

log = getLogger(__name__)


def new_plan_id() -> str:
    return str(uuid4())


def reported_lap_total(sessions: Sequence[SessionSummary]) -> int | None:
    """Sum of upstream lap counts, or ``None`` unless every session reports one."""

    if not sessions or any(session.lap_count is None for session in sessions):
        return None
    return sum(session.lap_count or 0 for session in sessions)


def derive_status(
    session_count: int,
    state: EventState | None,
    *,
    reported_laps: int | None = None,
) -> PlanItemStatus:
    if state is None:
        return PlanItemStatus.NEW

    has_anything = state.session_count > 0 or state.lap_count > 0 or state.entrant_count > 0
    if session_count == 0:
        if state.sessions_with_laps > 0:
            return PlanItemStatus.EXISTING
        return PlanItemStatus.PARTIAL if has_anything else PlanItemStatus.NEW

    covers_all_sessions = (
        state.session_count >= session_count
        and state.sessions_with_laps >= session_count
        and state.sessions_with_laps == state.session_count
        and state.lap_count > 0
    )
    if covers_all_sessions and (reported_laps is None or state.lap_count >= reported_laps):
        return PlanItemStatus.EXISTING
    return PlanItemStatus.PARTIAL if has_anything else PlanItemStatus.NEW


def estimate_counts(overview: EventOverview, state: EventState | None) -> PlanCounts:
    summary = build_heuristic_summary(overview.sessions)
    stored_entrants = state.entrant_count if state else 0
    stored_laps = state.lap_count if state else 0

    drivers, heuristic_laps = scaled_totals(summary, stored_entrants)
    reported = reported_lap_total(overview.sessions)
    laps = reported if reported is not None else heuristic_laps
    return PlanCounts(
        sessions=len(overview.sessions),
        drivers=drivers,
        estimated_laps=max(stored_laps, laps),
    )


@dataclass(slots=True)
class ImportPlanBuilder:
    """Classify requested events as NEW, PARTIAL or EXISTING and size them."""

    upstream: UpstreamClient
    unit_of_work_factory: Callable[[], RaceUnitOfWork]
    include_existing_events: bool = True
    clock: Callable[[], datetime] = field(default=utcnow)
    id_factory: Callable[[], str] = field(default=new_plan_id)

    def create_plan(self, request: PlanRequest, *, plan_id: str | None = None) -> ImportPlan:
        events = [parse_event_reference(ref) for ref in request.event_refs]
        overviews = asyncio.run(self._fetch_overviews(events))

        items: list[ImportPlanItem] = []
        with self.unit_of_work_factory() as uow:
            for ref, event, overview in zip(request.event_refs, events, overviews, strict=True):
                state = uow.repositories.events.get_state(self._candidate_refs(event, overview))
                status = derive_status(
                    len(overview.sessions),
                    state,
                    reported_laps=reported_lap_total(overview.sessions),
                )
                item = ImportPlanItem(
                    event_ref=ref,
                    status=status,
                    counts=estimate_counts(overview, state),
                )
                log.debug("Planned %s: %s %s", ref, item.status, item.counts)
                items.append(item)

        if not self.include_existing_events:
            items = [item for item in items if item.status != PlanItemStatus.EXISTING]

        plan = ImportPlan(
            plan_id=plan_id or self.id_factory(),
            generated_at=self.clock(),
            items=tuple(items),
        )
        log.info(
            "Created plan %s: events=%s estimated_laps=%s",
            plan.plan_id,
            plan.event_count,
            plan.estimated_laps,
        )
        return plan

    async def _fetch_overviews(self, events: Sequence[EventReference]) -> list[EventOverview]:
        return list(
            await asyncio.gather(*(self.upstream.fetch_event_overview(event) for event in events))
        )

    def _candidate_refs(self, event: EventReference, overview: EventOverview) -> list[str]:
        candidates = [event.event_slug, self.upstream.event_source_url(event)]
        if overview.event_id:
            candidates.append(overview.event_id)
        return candidates
