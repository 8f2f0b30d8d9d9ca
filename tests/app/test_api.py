from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from lapsync.adapters.memory import InMemoryPlanStore
from lapsync.api import ImportApi, error_response, job_payload
from lapsync.config import GuardrailLimits
from lapsync.domain.jobs import ImportJobQueue, JobItemInput
from lapsync.domain.model import ImportMode, JobState
from lapsync.domain.planning import ImportPlanBuilder, ImportPlanService
from tests.helpers.liverc import make_session

if TYPE_CHECKING:
    from collections.abc import Callable

    from lapsync.adapters.memory import InMemoryJobUnitOfWork, InMemoryRaceUnitOfWork
    from tests.helpers.liverc import FakeUpstreamClient


@pytest.fixture
def queue(job_unit_of_work: Callable[[], InMemoryJobUnitOfWork]) -> ImportJobQueue:
    return ImportJobQueue(unit_of_work_factory=job_unit_of_work)


@pytest.fixture
def api(
    upstream: FakeUpstreamClient,
    race_unit_of_work: Callable[[], InMemoryRaceUnitOfWork],
    queue: ImportJobQueue,
) -> ImportApi:
    upstream.add_overview("summer-cup", [make_session("heat-1", heat_label="Heat 1")])
    service = ImportPlanService(
        builder=ImportPlanBuilder(upstream=upstream, unit_of_work_factory=race_unit_of_work),
        store=InMemoryPlanStore(ttl_seconds=900),
        queue=queue,
        limits=GuardrailLimits(max_events=1, max_estimated_laps=10_000),
    )
    return ImportApi(plan_service=service, queue=queue)


def test_error_response_omits_empty_details() -> None:
    response = error_response(404, "JOB_NOT_FOUND", "missing")

    assert response.status == 404
    assert response.body == {"error": {"code": "JOB_NOT_FOUND", "message": "missing"}}


def test_create_plan_returns_plan(api: ImportApi) -> None:
    response = api.create_plan({"events": [{"eventRef": " summer-cup "}]})

    assert response.status == 200
    data = response.body["data"]
    assert [item["eventRef"] for item in data["items"]] == ["summer-cup"]
    assert data["items"][0]["status"] == "NEW"


@pytest.mark.parametrize(
    "body",
    [None, {}, {"events": []}, {"events": [{"eventRef": ""}]}, {"events": "summer-cup"}],
)
def test_create_plan_rejects_invalid_bodies(api: ImportApi, body: object) -> None:
    response = api.create_plan(body)

    assert response.status == 400
    error = response.body["error"]
    assert error["code"] == "INVALID_REQUEST"
    assert error["details"]["issues"]


def test_create_plan_reports_invalid_event_refs(api: ImportApi) -> None:
    response = api.create_plan({"events": [{"eventRef": "https://liverc.com/events/x"}]})

    assert response.status == 400
    assert response.body["error"]["code"] == "UNSUPPORTED_URL"


def test_apply_plan_queues_job(api: ImportApi, queue: ImportJobQueue) -> None:
    plan_id = api.create_plan({"events": [{"eventRef": "summer-cup"}]}).body["data"]["planId"]

    response = api.apply_plan({"planId": plan_id})

    assert response.status == 202
    job = queue.get_job(uuid.UUID(response.body["data"]["jobId"]))
    assert job.state == JobState.QUEUED


def test_apply_plan_errors(api: ImportApi, upstream: FakeUpstreamClient) -> None:
    assert api.apply_plan({}).status == 400

    missing = api.apply_plan({"planId": "no-such-plan"})
    assert missing.status == 404
    assert missing.body["error"]["code"] == "PLAN_NOT_FOUND"

    upstream.add_overview("winter-cup", [make_session("a-main")])
    body = {"events": [{"eventRef": "summer-cup"}, {"eventRef": "winter-cup"}]}
    plan_id = api.create_plan(body).body["data"]["planId"]
    blocked = api.apply_plan({"planId": plan_id})
    assert blocked.status == 400
    assert blocked.body["error"]["code"] == "PLAN_GUARDRAILS_EXCEEDED"
    assert blocked.body["error"]["details"]["suggestions"] == {"chunkCount": 2}


def test_apply_plan_reports_storage_errors_as_500(
    upstream: FakeUpstreamClient,
    race_unit_of_work: Callable[[], InMemoryRaceUnitOfWork],
    job_unit_of_work: Callable[[], InMemoryJobUnitOfWork],
) -> None:
    def broken() -> InMemoryJobUnitOfWork:
        raise IntegrityError("INSERT INTO import_job", {}, Exception("constraint failed"))

    upstream.add_overview("summer-cup", [make_session("heat-1")])
    service = ImportPlanService(
        builder=ImportPlanBuilder(upstream=upstream, unit_of_work_factory=race_unit_of_work),
        store=InMemoryPlanStore(ttl_seconds=900),
        queue=ImportJobQueue(unit_of_work_factory=broken),
        limits=GuardrailLimits(),
    )
    api = ImportApi(
        plan_service=service, queue=ImportJobQueue(unit_of_work_factory=job_unit_of_work)
    )
    plan_id = api.create_plan({"events": [{"eventRef": "summer-cup"}]}).body["data"]["planId"]

    response = api.apply_plan({"planId": plan_id})

    assert response.status == 500
    assert response.body["error"]["code"] == "JOB_ENQUEUE_FAILED"
    assert response.body["error"]["details"]["cause"] == "UNEXPECTED_ERROR"


def test_get_job_validates_id(api: ImportApi) -> None:
    invalid = api.get_job("not-a-uuid")
    missing = api.get_job(str(uuid.uuid4()))

    assert invalid.status == 400
    assert invalid.body["error"]["code"] == "INVALID_JOB_ID"
    assert missing.status == 404
    assert missing.body["error"]["code"] == "JOB_NOT_FOUND"


def test_job_payload_aggregates_succeeded_item_counts(
    api: ImportApi, queue: ImportJobQueue
) -> None:
    job = queue.create_job(
        "hash",
        ImportMode.SUMMARY,
        [JobItemInput(target_ref="summer-cup"), JobItemInput(target_ref="winter-cup")],
    )
    queue.take_next_queued_job()
    queue.update_job_item(
        job.items[0].id,
        state=JobState.SUCCEEDED,
        counts={"sessionsImported": 2, "lapsImported": 40, "skippedLapCount": 1},
    )
    queue.update_job_item(job.items[1].id, counts={"lapsImported": 99})
    queue.update_job_progress(job.id, 50)

    response = api.get_job(str(job.id))

    assert response.status == 200
    payload = response.body["data"]
    assert payload == job_payload(queue.get_job(job.id))
    assert payload["state"] == "RUNNING"
    assert payload["mode"] == "SUMMARY"
    assert payload["counts"] == {
        "sessionsImported": 2,
        "entrantsProcessed": 0,
        "lapsImported": 40,
        "skippedLapCount": 1,
        "skippedEntrantCount": 0,
        "skippedOutlapCount": 0,
    }
    assert payload["progress"] == {"percentage": 50, "completedItems": 1, "totalItems": 2}
    assert [item["targetRef"] for item in payload["items"]] == ["summer-cup", "winter-cup"]
