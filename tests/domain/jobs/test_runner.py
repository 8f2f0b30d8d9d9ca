from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from lapsync.domain.errors import UpstreamError
from lapsync.domain.jobs import ImportJobQueue, ImportJobRunner, JobItemInput, progress_pct
from lapsync.domain.model import ImportMode, JobState, TargetType
from lapsync.domain.reconciliation import EventImporter, RaceImporter
from tests.helpers.liverc import (
    make_session,
    race_url,
    summer_cup_entry_list,
    summer_cup_race_result,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from lapsync.adapters.memory import (
        InMemoryDatabase,
        InMemoryJobUnitOfWork,
        InMemoryRaceUnitOfWork,
    )
    from tests.helpers.liverc import FakeUpstreamClient

A_MAIN_URL = race_url("summer-cup", "pro-buggy", "round-1", "a-main")
A_MAIN_COUNTS = {
    "sessionsImported": 1,
    "entrantsProcessed": 1,
    "lapsImported": 3,
    "skippedLapCount": 2,
    "skippedEntrantCount": 1,
    "skippedOutlapCount": 0,
}


@pytest.fixture
def queue(job_unit_of_work: Callable[[], InMemoryJobUnitOfWork]) -> ImportJobQueue:
    return ImportJobQueue(unit_of_work_factory=job_unit_of_work)


@pytest.fixture
def runner(
    queue: ImportJobQueue,
    upstream: FakeUpstreamClient,
    race_unit_of_work: Callable[[], InMemoryRaceUnitOfWork],
) -> ImportJobRunner:
    upstream.add_overview("summer-cup", [make_session("a-main", heat_label="A Main")])
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), summer_cup_race_result())
    race_importer = RaceImporter(upstream=upstream, unit_of_work_factory=race_unit_of_work)
    return ImportJobRunner(
        queue=queue,
        event_importer=EventImporter(upstream=upstream, race_importer=race_importer),
    )


@pytest.mark.parametrize(
    ("done", "total", "expected"),
    [(0, 0, 100), (0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100)],
)
def test_progress_pct(done: int, total: int, expected: int) -> None:
    assert progress_pct(done, total) == expected


def test_run_once_on_empty_queue_returns_none(runner: ImportJobRunner) -> None:
    assert runner.run_once() is None


def test_run_once_imports_event_items(
    runner: ImportJobRunner,
    queue: ImportJobQueue,
    memory_database: InMemoryDatabase,
) -> None:
    job = queue.create_job("hash", ImportMode.SUMMARY, [JobItemInput(target_ref="summer-cup")])

    claimed = runner.run_once()

    assert claimed is not None
    assert claimed.id == job.id
    stored = queue.get_job(job.id)
    assert stored.state == JobState.SUCCEEDED
    assert stored.progress_pct == 100
    assert stored.items[0].state == JobState.SUCCEEDED
    assert stored.items[0].counts == A_MAIN_COUNTS
    assert len(memory_database.tables.laps) == 3


def test_run_once_imports_session_items(runner: ImportJobRunner, queue: ImportJobQueue) -> None:
    job = queue.create_job(
        "hash",
        ImportMode.SUMMARY,
        [JobItemInput(target_ref=A_MAIN_URL, target_type=TargetType.SESSION)],
    )

    runner.run_once()

    stored = queue.get_job(job.id)
    assert stored.state == JobState.SUCCEEDED
    assert stored.items[0].counts is not None
    assert stored.items[0].counts["lapsImported"] == 3
    assert stored.items[0].counts["sourceUrl"] == A_MAIN_URL


def test_job_without_items_succeeds(runner: ImportJobRunner, queue: ImportJobQueue) -> None:
    job = queue.create_job("hash", ImportMode.SUMMARY, [])

    runner.run_once()

    stored = queue.get_job(job.id)
    assert stored.state == JobState.SUCCEEDED
    assert stored.progress_pct == 100


def test_failing_item_fails_the_job(
    runner: ImportJobRunner,
    queue: ImportJobQueue,
    upstream: FakeUpstreamClient,
) -> None:
    upstream.fail("winter-cup", UpstreamError("LiveRC returned 503", url="x", status=503))
    job = queue.create_job(
        "hash",
        ImportMode.SUMMARY,
        [
            JobItemInput(target_ref="summer-cup"),
            JobItemInput(target_ref="winter-cup"),
            JobItemInput(target_ref="autumn-cup"),
        ],
    )

    runner.run_once()

    stored = queue.get_job(job.id)
    message = "Import of winter-cup failed: LiveRC returned 503"
    assert stored.state == JobState.FAILED
    assert stored.message == message
    assert stored.progress_pct == 33
    assert [(item.state, item.message) for item in stored.items] == [
        (JobState.SUCCEEDED, None),
        (JobState.FAILED, message),
        (JobState.FAILED, message),
    ]
    assert ("event_overview", "autumn-cup") not in upstream.calls


def test_unexpected_error_fails_the_job(runner: ImportJobRunner, queue: ImportJobQueue) -> None:
    job = queue.create_job("hash", ImportMode.SUMMARY, [JobItemInput(target_ref="unknown-cup")])

    runner.run_once()

    stored = queue.get_job(job.id)
    assert stored.state == JobState.FAILED
    assert stored.message is not None
    assert stored.message.startswith("LiveRC import failed:")


def test_run_forever_drains_queue_until_stopped(
    runner: ImportJobRunner,
    queue: ImportJobQueue,
) -> None:
    jobs = [
        queue.create_job("a", ImportMode.SUMMARY, [JobItemInput(target_ref="summer-cup")]),
        queue.create_job("b", ImportMode.SUMMARY, []),
    ]
    worker = threading.Thread(target=runner.run_forever, kwargs={"poll_interval": 0.01})
    worker.start()
    try:
        for _ in range(500):
            if all(queue.get_job(job.id).state == JobState.SUCCEEDED for job in jobs):
                break
            threading.Event().wait(0.01)
    finally:
        runner.stop()
        worker.join(timeout=5)

    assert not worker.is_alive()
    assert [queue.get_job(job.id).state for job in jobs] == [JobState.SUCCEEDED] * 2
