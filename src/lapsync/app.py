"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from functools import cache
from logging import getLogger
from typing import TYPE_CHECKING, Any

from lapsync.adapters.liverc import build_liverc_client
from lapsync.adapters.memory import InMemoryPlanStore
from lapsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyJobUnitOfWork,
    SqlAlchemyRaceUnitOfWork,
    is_started,
    startup,
)
from lapsync.config import get_job_config
from lapsync.domain.jobs import ImportJobQueue, ImportJobRunner
from lapsync.domain.model import PlanRequest
from lapsync.domain.planning import ImportPlanBuilder, ImportPlanService
from lapsync.domain.ports.unit_of_work import JobUnitOfWork, RaceUnitOfWork
from lapsync.domain.reconciliation import EventImporter, RaceImporter

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from lapsync.config import JobConfig
    from lapsync.domain.model import ImportJob, ImportPlan
    from lapsync.domain.ports.plan_store import PlanStore
    from lapsync.domain.ports.upstream import UpstreamClient
    from lapsync.domain.reconciliation import ImportSummary

RaceUnitOfWorkFactory = Callable[[], RaceUnitOfWork]
JobUnitOfWorkFactory = Callable[[], JobUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


@cache
def default_plan_store() -> InMemoryPlanStore:
    config = get_job_config()
    return InMemoryPlanStore(
        ttl_seconds=config.plan_ttl_seconds,
        retention_seconds=config.plan_retention_seconds,
    )


def build_race_importer(
    *,
    upstream: UpstreamClient | None = None,
    unit_of_work_factory: RaceUnitOfWorkFactory | None = None,
) -> RaceImporter:
    if unit_of_work_factory is None:
        _ensure_started()
    return RaceImporter(
        upstream=upstream or build_liverc_client(),
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyRaceUnitOfWork,
    )


def build_job_queue(*, unit_of_work_factory: JobUnitOfWorkFactory | None = None) -> ImportJobQueue:
    if unit_of_work_factory is None:
        _ensure_started()
    return ImportJobQueue(unit_of_work_factory=unit_of_work_factory or SqlAlchemyJobUnitOfWork)


def build_plan_service(
    *,
    upstream: UpstreamClient | None = None,
    race_unit_of_work_factory: RaceUnitOfWorkFactory | None = None,
    job_unit_of_work_factory: JobUnitOfWorkFactory | None = None,
    plan_store: PlanStore | None = None,
    config: JobConfig | None = None,
) -> ImportPlanService:
    if race_unit_of_work_factory is None:
        _ensure_started()
    effective_config = config or get_job_config()
    builder = ImportPlanBuilder(
        upstream=upstream or build_liverc_client(),
        unit_of_work_factory=race_unit_of_work_factory or SqlAlchemyRaceUnitOfWork,
    )
    return ImportPlanService(
        builder=builder,
        store=plan_store or default_plan_store(),
        queue=build_job_queue(unit_of_work_factory=job_unit_of_work_factory),
        limits=effective_config.limits,
    )


def build_job_runner(
    *,
    upstream: UpstreamClient | None = None,
    race_unit_of_work_factory: RaceUnitOfWorkFactory | None = None,
    job_unit_of_work_factory: JobUnitOfWorkFactory | None = None,
) -> ImportJobRunner:
    effective_upstream = upstream or build_liverc_client()
    race_importer = build_race_importer(
        upstream=effective_upstream, unit_of_work_factory=race_unit_of_work_factory
    )
    return ImportJobRunner(
        queue=build_job_queue(unit_of_work_factory=job_unit_of_work_factory),
        event_importer=EventImporter(upstream=effective_upstream, race_importer=race_importer),
    )


def import_race(
    url: str,
    *,
    include_outlaps: bool = False,
    importer: RaceImporter | None = None,
) -> ImportSummary:
    """Import one LiveRC race result into the configured database."""

    effective_importer = importer or build_race_importer()
    log.info("Starting race import: url=%s, include_outlaps=%s", url, include_outlaps)
    return effective_importer.import_from_url(url, include_outlaps=include_outlaps)


def import_race_payload(
    payload: Mapping[str, Any],
    *,
    include_outlaps: bool = False,
    importer: RaceImporter | None = None,
) -> ImportSummary:
    """Import an uploaded LiveRC race-result document."""

    effective_importer = importer or build_race_importer()
    return effective_importer.import_from_payload(payload, include_outlaps=include_outlaps)


def create_plan(
    event_refs: Sequence[str],
    *,
    service: ImportPlanService | None = None,
) -> ImportPlan:
    effective_service = service or build_plan_service()
    return effective_service.create_plan(PlanRequest(event_refs=tuple(event_refs)))


def enqueue_events(
    event_refs: Sequence[str],
    *,
    service: ImportPlanService | None = None,
) -> tuple[ImportPlan, ImportJob]:
    """Plan the events, check the guardrails and queue one job for the whole plan."""

    effective_service = service or build_plan_service()
    plan = effective_service.create_plan(PlanRequest(event_refs=tuple(event_refs)))
    job = effective_service.apply_plan(plan.plan_id)
    return plan, job


def run_worker(
    *,
    once: bool = False,
    poll_interval: float | None = None,
    runner: ImportJobRunner | None = None,
) -> ImportJob | None:
    """Drain the job queue; with ``once`` process at most one job and return it."""

    effective_runner = runner or build_job_runner()
    if once:
        return effective_runner.run_once()
    interval = (
        poll_interval if poll_interval is not None else get_job_config().poll_interval_seconds
    )
    effective_runner.run_forever(poll_interval=interval)
    return None


def get_job(job_id: UUID, *, queue: ImportJobQueue | None = None) -> ImportJob:
    effective_queue = queue or build_job_queue()
    return effective_queue.get_job(job_id)
