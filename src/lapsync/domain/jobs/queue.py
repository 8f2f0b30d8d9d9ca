"""Persisted import job queue.

Every operation opens its own unit of work and commits before returning, so a
crashed worker leaves an auditable record of how far it got.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from lapsync.domain.errors import JobNotFound
from lapsync.domain.model import (
    ImportJob,
    ImportJobItem,
    ImportMode,
    JobState,
    TargetType,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from uuid import UUID

    from lapsync.domain.model import ImportPlan
    from lapsync.domain.ports.unit_of_work import JobUnitOfWork

log = getLogger(__name__)


def compute_plan_hash(plan_id: str) -> str:
    return hashlib.sha256(plan_id.strip().encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class JobItemInput:
    target_ref: str
    target_type: TargetType = TargetType.EVENT
    counts: dict[str, Any] | None = None


@dataclass(slots=True)
class ImportJobQueue:
    unit_of_work_factory: Callable[[], JobUnitOfWork]
    clock: Callable[[], datetime] = field(default=utcnow)

    def create_job(
        self,
        plan_hash: str,
        mode: ImportMode,
        items: Iterable[JobItemInput],
    ) -> ImportJob:
        now = self.clock()
        job = ImportJob(plan_hash=plan_hash, mode=mode, created_at=now, updated_at=now)
        targets = [item for item in items if item.target_ref.strip()]
        job.items = [
            ImportJobItem(
                job_id=job.id,
                target_type=item.target_type,
                target_ref=item.target_ref.strip(),
                counts=dict(item.counts) if item.counts is not None else None,
                position=position,
            )
            for position, item in enumerate(targets)
        ]
        with self.unit_of_work_factory() as uow:
            uow.repositories.jobs.add(job)
            uow.commit()
        log.info("Queued job %s with %s items", job.id, len(job.items))
        return job

    def enqueue_plan(self, plan: ImportPlan, *, mode: ImportMode = ImportMode.SUMMARY) -> ImportJob:
        """Create one EVENT item per plan item, carrying the plan's size estimate."""

        return self.create_job(
            compute_plan_hash(plan.plan_id),
            mode,
            [
                JobItemInput(target_ref=item.event_ref, counts=item.counts.as_payload())
                for item in plan.items
            ],
        )

    def get_job(self, job_id: UUID) -> ImportJob:
        with self.unit_of_work_factory() as uow:
            job = uow.repositories.jobs.get(job_id)
        if job is None:
            raise JobNotFound(f"Import job {job_id} not found", details={"jobId": str(job_id)})
        return job

    def take_next_queued_job(self) -> ImportJob | None:
        """Claim the oldest queued job; ``None`` when the queue is empty or the race was lost."""

        with self.unit_of_work_factory() as uow:
            job = uow.repositories.jobs.claim_next_queued(now=self.clock())
            uow.commit()
        if job is not None:
            log.info("Claimed job %s", job.id)
        return job

    def update_job_progress(self, job_id: UUID, pct: float) -> None:
        with self.unit_of_work_factory() as uow:
            job = self._require(uow, job_id)
            job.set_progress(pct, now=self.clock())
            uow.commit()

    def update_job_item(
        self,
        item_id: UUID,
        *,
        state: JobState | None = None,
        message: str | None = None,
        counts: dict[str, Any] | None = None,
    ) -> None:
        with self.unit_of_work_factory() as uow:
            item = uow.repositories.jobs.get_item(item_id)
            if item is None:
                raise JobNotFound(
                    f"Import job item {item_id} not found", details={"itemId": str(item_id)}
                )
            item.patch(state=state, message=message, counts=counts)
            uow.commit()

    def mark_job_succeeded(self, job_id: UUID) -> None:
        with self.unit_of_work_factory() as uow:
            job = self._require(uow, job_id)
            job.succeed(now=self.clock())
            uow.commit()
        log.info("Job %s succeeded", job_id)

    def mark_job_failed(self, job_id: UUID, message: str) -> None:
        with self.unit_of_work_factory() as uow:
            job = self._require(uow, job_id)
            job.fail(message, now=self.clock())
            uow.commit()
        log.warning("Job %s failed: %s", job_id, message)

    @staticmethod
    def _require(uow: JobUnitOfWork, job_id: UUID) -> ImportJob:
        job = uow.repositories.jobs.get(job_id)
        if job is None:
            raise JobNotFound(f"Import job {job_id} not found", details={"jobId": str(job_id)})
        return job
