"""Import job aggregate and its state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Final
from uuid import UUID

from lapsync.domain.errors import InvalidJobTransition
from lapsync.domain.model.enums import ImportMode, JobState, TargetType
from lapsync.domain.model.racing import new_id

_ALLOWED: Final[frozenset[tuple[JobState, JobState]]] = frozenset(
    {
        (JobState.QUEUED, JobState.RUNNING),
        (JobState.QUEUED, JobState.FAILED),
        (JobState.RUNNING, JobState.SUCCEEDED),
        (JobState.RUNNING, JobState.FAILED),
    }
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def check_transition(current: JobState, target: JobState, *, subject: str) -> None:
    """Raise unless ``current -> target`` is a legal (or no-op) transition."""

    if current == target or (current, target) in _ALLOWED:
        return
    raise InvalidJobTransition(
        f"{subject} cannot move from {current} to {target}",
        details={"from": str(current), "to": str(target)},
    )


def clamp_progress(pct: float) -> int:
    return max(0, min(100, round(pct)))


@dataclass(eq=False, kw_only=True)
class ImportJobItem:
    id: UUID = field(default_factory=new_id)
    job_id: UUID | None = None
    target_type: TargetType = TargetType.EVENT
    target_ref: str
    state: JobState = JobState.QUEUED
    counts: dict[str, Any] | None = None
    message: str | None = None
    position: int = 0

    def transition(self, target: JobState) -> None:
        check_transition(self.state, target, subject=f"Job item {self.id}")
        self.state = target

    def patch(
        self,
        *,
        state: JobState | None = None,
        message: str | None = None,
        counts: dict[str, Any] | None = None,
    ) -> None:
        if state is not None:
            self.transition(state)
        if message is not None:
            self.message = message
        if counts is not None:
            self.counts = dict(counts)


@dataclass(eq=False, kw_only=True)
class ImportJob:
    id: UUID = field(default_factory=new_id)
    plan_hash: str
    mode: ImportMode = ImportMode.SUMMARY
    state: JobState = JobState.QUEUED
    progress_pct: int = 0
    message: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    items: list[ImportJobItem] = field(default_factory=list["ImportJobItem"])

    def item(self, item_id: UUID) -> ImportJobItem | None:
        return next((item for item in self.items if item.id == item_id), None)

    def claim(self, *, now: datetime | None = None) -> None:
        """Move a queued job and its items to RUNNING."""

        if self.state != JobState.QUEUED:
            raise InvalidJobTransition(
                f"Job {self.id} is {self.state}, only QUEUED jobs can be claimed"
            )
        self.state = JobState.RUNNING
        for item in self.items:
            if item.state == JobState.QUEUED:
                item.state = JobState.RUNNING
        self.touch(now)

    def set_progress(self, pct: float, *, now: datetime | None = None) -> None:
        self.progress_pct = clamp_progress(pct)
        self.touch(now)

    def succeed(self, *, now: datetime | None = None) -> None:
        check_transition(self.state, JobState.SUCCEEDED, subject=f"Job {self.id}")
        self.state = JobState.SUCCEEDED
        self.progress_pct = 100
        self.message = None
        for item in self.items:
            if not item.state.is_terminal:
                item.state = JobState.SUCCEEDED
                item.message = None
        self.touch(now)

    def fail(self, message: str, *, now: datetime | None = None) -> None:
        check_transition(self.state, JobState.FAILED, subject=f"Job {self.id}")
        self.state = JobState.FAILED
        self.message = message
        for item in self.items:
            if item.state != JobState.SUCCEEDED:
                item.state = JobState.FAILED
                item.message = message
        self.touch(now)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()
