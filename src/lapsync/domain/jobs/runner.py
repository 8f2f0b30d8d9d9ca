"""Worker that drains the import job queue."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from lapsync.domain.errors import LapSyncError
from lapsync.domain.model import JobState, TargetType

if TYPE_CHECKING:
    from lapsync.domain.model import ImportJob, ImportJobItem
    from lapsync.domain.reconciliation import EventImporter

    from .queue import ImportJobQueue

log = getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0


def progress_pct(done: int, total: int) -> int:
    if total <= 0:
        return 100
    return round(done / total * 100)


class ItemImportFailed(Exception):  # noqa: N818
    def __init__(self, item: ImportJobItem, message: str) -> None:
        super().__init__(message)
        self.item = item
        self.message = message


@dataclass(slots=True)
class ImportJobRunner:
    """Claim queued jobs and import their items one by one.

    Failures are logged and recorded on the job; they never escape ``run_once``.
    """

    queue: ImportJobQueue
    event_importer: EventImporter
    stop_event: threading.Event = field(default_factory=threading.Event)

    def run_once(self) -> ImportJob | None:
        """Process at most one job; returns the claimed job (``None`` if the queue was idle)."""

        try:
            job = self.queue.take_next_queued_job()
        except Exception:
            log.exception("Failed to claim the next queued job")
            return None
        if job is None:
            return None

        try:
            self._process(job)
        except ItemImportFailed as exc:
            self._fail(job, exc.message)
        except Exception as exc:
            log.exception("Job %s failed", job.id)
            self._fail(job, f"LiveRC import failed: {exc}")
        return job

    def run_forever(self, *, poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS) -> None:
        """Poll until ``stop()`` is called; idle polls sleep for ``poll_interval`` seconds."""

        log.info("Worker started (poll interval %.2fs)", poll_interval)
        while not self.stop_event.is_set():
            job = self.run_once()
            if job is None:
                self.stop_event.wait(poll_interval)
        log.info("Worker stopped")

    def stop(self) -> None:
        self.stop_event.set()

    def _process(self, job: ImportJob) -> None:
        pending = [item for item in job.items if not item.state.is_terminal]
        total = len(job.items)
        done = total - len(pending)
        if total == 0:
            self.queue.update_job_progress(job.id, 100)

        for item in pending:
            log.info("Job %s: importing %s %s", job.id, item.target_type, item.target_ref)
            try:
                counts = self._import_item(item)
            except LapSyncError as exc:
                log.warning(
                    "Job %s: import of %s failed (%s): %s",
                    job.id,
                    item.target_ref,
                    exc.code,
                    exc.message,
                )
                message = f"Import of {item.target_ref} failed: {exc.message}"
                self._safe_update_item(item, state=JobState.FAILED, message=message)
                raise ItemImportFailed(item, message) from exc

            self._safe_update_item(item, state=JobState.SUCCEEDED, counts=counts)
            done += 1
            self.queue.update_job_progress(job.id, progress_pct(done, total))
            log.info("Job %s: imported %s %s", job.id, item.target_ref, counts)

        self.queue.mark_job_succeeded(job.id)

    def _import_item(self, item: ImportJobItem) -> dict[str, Any]:
        match item.target_type:
            case TargetType.EVENT:
                return self.event_importer.import_event(item.target_ref).as_payload()
            case TargetType.SESSION:
                summary = self.event_importer.race_importer.import_from_url(
                    item.target_ref, include_outlaps=self.event_importer.include_outlaps
                )
                return summary.as_payload()

    def _safe_update_item(
        self,
        item: ImportJobItem,
        *,
        state: JobState,
        message: str | None = None,
        counts: dict[str, Any] | None = None,
    ) -> None:
        try:
            self.queue.update_job_item(item.id, state=state, message=message, counts=counts)
        except LapSyncError:
            log.exception("Failed to update job item %s", item.id)

    def _fail(self, job: ImportJob, message: str) -> None:
        try:
            self.queue.mark_job_failed(job.id, message)
        except Exception:
            log.exception("Failed to mark job %s as failed", job.id)
