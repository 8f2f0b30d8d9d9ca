"""Framework-agnostic request handlers for planning, applying and inspecting imports.

Handlers take already-decoded JSON bodies and return an ``ApiResponse``; routing,
authentication and transport belong to the hosting web framework.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lapsync.domain.errors import LapSyncError
from lapsync.domain.model import JobState, PlanRequest

if TYPE_CHECKING:
    from lapsync.domain.jobs import ImportJobQueue
    from lapsync.domain.model import ImportJob
    from lapsync.domain.planning import ImportPlanService

log = getLogger(__name__)

IMPORT_COUNT_KEYS = (
    "sessionsImported",
    "entrantsProcessed",
    "lapsImported",
    "skippedLapCount",
    "skippedEntrantCount",
    "skippedOutlapCount",
)


@dataclass(frozen=True, slots=True)
class ApiResponse:
    status: int
    body: dict[str, Any]


class _RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)


class PlanEventInput(_RequestModel):
    event_ref: str = Field(alias="eventRef", min_length=1)


class CreatePlanRequest(_RequestModel):
    events: list[PlanEventInput] = Field(min_length=1)


class ApplyPlanRequest(_RequestModel):
    plan_id: str = Field(alias="planId", min_length=1)


def error_response(
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> ApiResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return ApiResponse(status=status, body={"error": error})


def _from_error(exc: LapSyncError) -> ApiResponse:
    return error_response(exc.status, exc.code, exc.message, exc.details)


def _invalid_request(exc: ValidationError, message: str) -> ApiResponse:
    issues = [
        {
            "path": ".".join(str(part) for part in issue["loc"]),
            "message": issue["msg"],
            "code": issue["type"],
        }
        for issue in exc.errors()
    ]
    return error_response(400, "INVALID_REQUEST", message, {"issues": issues})


def _aggregate_counts(job: ImportJob) -> dict[str, int]:
    totals = dict.fromkeys(IMPORT_COUNT_KEYS, 0)
    for item in job.items:
        if item.state != JobState.SUCCEEDED or not item.counts:
            continue
        for key in IMPORT_COUNT_KEYS:
            value = item.counts.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                totals[key] += value
    return totals


def job_payload(job: ImportJob) -> dict[str, Any]:
    completed = sum(1 for item in job.items if item.state == JobState.SUCCEEDED)
    return {
        "jobId": str(job.id),
        "planHash": job.plan_hash,
        "mode": str(job.mode),
        "state": str(job.state),
        "progressPct": job.progress_pct,
        "message": job.message,
        "createdAt": job.created_at.isoformat(),
        "updatedAt": job.updated_at.isoformat(),
        "counts": _aggregate_counts(job),
        "progress": {
            "percentage": job.progress_pct,
            "completedItems": completed,
            "totalItems": len(job.items),
        },
        "items": [
            {
                "id": str(item.id),
                "targetType": str(item.target_type),
                "targetRef": item.target_ref,
                "state": str(item.state),
                "message": item.message,
                "counts": item.counts,
            }
            for item in job.items
        ],
    }


class ImportApi:
    """Request handlers for the import plan and job endpoints."""

    def __init__(self, *, plan_service: ImportPlanService, queue: ImportJobQueue) -> None:
        self._plans = plan_service
        self._queue = queue

    def create_plan(self, body: object) -> ApiResponse:
        try:
            request = CreatePlanRequest.model_validate(body)
        except ValidationError as exc:
            log.warning("Create-plan request failed validation: %s", exc.error_count())
            return _invalid_request(exc, "LiveRC import plan request payload is invalid.")

        try:
            plan = self._plans.create_plan(
                PlanRequest(event_refs=tuple(event.event_ref for event in request.events))
            )
        except LapSyncError as exc:
            log.warning("Create-plan failed (%s): %s", exc.code, exc.message)
            return _from_error(exc)
        return ApiResponse(status=200, body={"data": plan.as_payload()})

    def apply_plan(self, body: object) -> ApiResponse:
        try:
            request = ApplyPlanRequest.model_validate(body)
        except ValidationError as exc:
            log.warning("Apply-plan request failed validation: %s", exc.error_count())
            return _invalid_request(exc, "LiveRC import apply request payload is invalid.")

        try:
            job = self._plans.apply_plan(request.plan_id)
        except LapSyncError as exc:
            log.warning("Apply-plan %s rejected (%s): %s", request.plan_id, exc.code, exc.message)
            return _from_error(exc)
        return ApiResponse(status=202, body={"data": {"jobId": str(job.id)}})

    def get_job(self, job_id: str) -> ApiResponse:
        try:
            parsed = UUID(job_id.strip())
        except ValueError:
            return error_response(
                400, "INVALID_JOB_ID", "A valid job identifier must be provided."
            )

        try:
            job = self._queue.get_job(parsed)
        except LapSyncError as exc:
            return _from_error(exc)
        return ApiResponse(status=200, body={"data": job_payload(job)})
