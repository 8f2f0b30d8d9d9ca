"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class JobState(StrEnum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in {JobState.SUCCEEDED, JobState.FAILED}


class ImportMode(StrEnum):
    SUMMARY = "SUMMARY"
    FULL = "FULL"


class TargetType(StrEnum):
    EVENT = "EVENT"
    SESSION = "SESSION"


class PlanItemStatus(StrEnum):
    NEW = "NEW"
    PARTIAL = "PARTIAL"
    EXISTING = "EXISTING"


class SessionType(StrEnum):
    PRACTICE = "PRACTICE"
    QUALIFIER = "QUALIFIER"
    HEAT = "HEAT"
    MAIN = "MAIN"
    OTHER = "OTHER"
