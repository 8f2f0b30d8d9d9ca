"""Create, store and apply import plans."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from lapsync.domain.errors import (
    JobEnqueueFailed,
    LapSyncError,
    PlanNotFound,
    PlanRecomputeFailed,
)

from .guardrails import check_guardrails

if TYPE_CHECKING:
    from lapsync.config.jobs import GuardrailLimits
    from lapsync.domain.jobs import ImportJobQueue
    from lapsync.domain.model import ImportJob, ImportPlan, PlanRequest
    from lapsync.domain.ports.plan_store import PlanStore

    from .builder import ImportPlanBuilder

log = getLogger(__name__)


def _cause(exc: Exception) -> str:
    if isinstance(exc, LapSyncError):
        return exc.code
    log.exception("Unexpected %s while applying an import plan", exc.__class__.__name__)
    return "UNEXPECTED_ERROR"


@dataclass(slots=True)
class ImportPlanService:
    builder: ImportPlanBuilder
    store: PlanStore
    queue: ImportJobQueue
    limits: GuardrailLimits

    def create_plan(self, request: PlanRequest) -> ImportPlan:
        plan = self.builder.create_plan(request)
        self.store.save(plan, request)
        return plan

    def resolve_plan(self, plan_id: str) -> ImportPlan:
        """Return the stored plan, rebuilding it under the same id once its body expired."""

        stored = self.store.get(plan_id.strip())
        if stored is None:
            raise PlanNotFound(
                "Import plan could not be found. Generate a new plan and try again.",
                details={"planId": plan_id},
            )
        if stored.plan is not None:
            return stored.plan

        log.info("Plan %s expired, recomputing from the stored request", stored.plan_id)
        try:
            plan = self.builder.create_plan(stored.request, plan_id=stored.plan_id)
        except Exception as exc:
            raise PlanRecomputeFailed(
                "Unable to recompute LiveRC import plan. Generate a new plan and try again.",
                details={"planId": stored.plan_id, "cause": _cause(exc)},
            ) from exc
        self.store.save(plan, stored.request)
        return plan

    def apply_plan(self, plan_id: str) -> ImportJob:
        plan = self.resolve_plan(plan_id)
        check_guardrails(plan, self.limits)
        try:
            job = self.queue.enqueue_plan(plan)
        except Exception as exc:
            raise JobEnqueueFailed(
                "Unable to queue LiveRC import job. Try again later.",
                details={"planId": plan.plan_id, "cause": _cause(exc)},
            ) from exc
        log.info(
            "Plan %s enqueued as job %s: events=%s estimated_laps=%s",
            plan.plan_id,
            job.id,
            plan.event_count,
            plan.estimated_laps,
        )
        return job
