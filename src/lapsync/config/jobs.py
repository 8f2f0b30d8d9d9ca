"""Import plan and job worker configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_float, env_int

DEFAULT_MAX_EVENTS_PER_PLAN: Final[int] = 12
DEFAULT_MAX_ESTIMATED_LAPS: Final[int] = 10_000
DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 1.0
DEFAULT_PLAN_TTL_SECONDS: Final[float] = 15 * 60
DEFAULT_PLAN_RETENTION_SECONDS: Final[float] = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class GuardrailLimits:
    max_events: int = DEFAULT_MAX_EVENTS_PER_PLAN
    max_estimated_laps: int = DEFAULT_MAX_ESTIMATED_LAPS


@dataclass(frozen=True, slots=True)
class JobConfig:
    limits: GuardrailLimits
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    plan_ttl_seconds: float = DEFAULT_PLAN_TTL_SECONDS
    plan_retention_seconds: float = DEFAULT_PLAN_RETENTION_SECONDS


def get_job_config() -> JobConfig:
    limits = GuardrailLimits(
        max_events=env_int("LAPSYNC_MAX_EVENTS_PER_PLAN", DEFAULT_MAX_EVENTS_PER_PLAN),
        max_estimated_laps=env_int("LAPSYNC_MAX_ESTIMATED_LAPS", DEFAULT_MAX_ESTIMATED_LAPS),
    )
    plan_ttl = env_float("LAPSYNC_PLAN_TTL_SECONDS", DEFAULT_PLAN_TTL_SECONDS, minimum=1.0)
    return JobConfig(
        limits=limits,
        poll_interval_seconds=env_float(
            "LAPSYNC_WORKER_POLL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS, minimum=0.05
        ),
        plan_ttl_seconds=plan_ttl,
        plan_retention_seconds=max(
            plan_ttl,
            env_float("LAPSYNC_PLAN_RETENTION_SECONDS", DEFAULT_PLAN_RETENTION_SECONDS),
        ),
    )
