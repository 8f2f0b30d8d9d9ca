"""Typed failures raised by the import core.

Every error carries a stable ``code`` and the HTTP-ish ``status`` used by the
request handlers, plus a ``retryable`` hint for orchestration. Soft anomalies
during reconciliation are never raised; see ``SkipReason``.
"""

from __future__ import annotations

from typing import Any


class LapSyncError(Exception):
    """Base class for domain failures."""

    code: str = "LAPSYNC_ERROR"
    status: int = 500
    retryable: bool = False

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})


class InvalidReference(LapSyncError):  # noqa: N818
    """The supplied results link cannot be ingested as-is."""

    status = 400

    def __init__(
        self,
        message: str,
        *,
        code: str = "INVALID_URL",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.code = code


class InvalidPayload(LapSyncError):  # noqa: N818
    """An uploaded race result document lacks required identifiers or laps."""

    code = "INVALID_RACE_RESULT_PAYLOAD"
    status = 422


class UpstreamFailure(LapSyncError):
    """Base class for failures while talking to the timing provider."""

    code = "UPSTREAM_FAILURE"
    status = 502
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        url: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details={"url": url, **(details or {})})
        self.url = url


class UpstreamUnavailable(UpstreamFailure):  # noqa: N818
    """Transport-level failure (DNS, connect, timeout, reset)."""

    code = "UPSTREAM_UNAVAILABLE"


class UpstreamMalformed(UpstreamFailure):  # noqa: N818
    """The upstream body was not a JSON document of the expected shape."""

    code = "UPSTREAM_MALFORMED"


class UpstreamError(UpstreamFailure):
    """The upstream answered with a non-success HTTP status."""

    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, *, url: str, status: int) -> None:
        super().__init__(message, url=url, details={"upstreamStatus": status})
        self.status = status


class GuardrailExceeded(LapSyncError):  # noqa: N818
    """A plan is too large to apply as a single job."""

    code = "PLAN_GUARDRAILS_EXCEEDED"
    status = 400


class PlanNotFound(LapSyncError):  # noqa: N818
    code = "PLAN_NOT_FOUND"
    status = 404


class JobNotFound(LapSyncError):  # noqa: N818
    code = "JOB_NOT_FOUND"
    status = 404


class InvalidJobTransition(LapSyncError):  # noqa: N818
    """A job or item was asked to leave a terminal state or skip a step."""

    code = "INVALID_JOB_TRANSITION"
    status = 409


class PersistenceUnavailable(LapSyncError):  # noqa: N818
    """The storage backend could not be reached."""

    code = "PERSISTENCE_UNAVAILABLE"
    status = 503
    retryable = True


class PlanRecomputeFailed(LapSyncError):  # noqa: N818
    """An expired plan could not be rebuilt from its stored request."""

    code = "PLAN_RECOMPUTE_FAILED"


class JobEnqueueFailed(LapSyncError):  # noqa: N818
    code = "JOB_ENQUEUE_FAILED"
