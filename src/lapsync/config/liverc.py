"""LiveRC upstream configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_float, env_int, env_str
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import data_dir

DEFAULT_LIVERC_RESULTS_BASE_URL = "https://liverc.com/results"
DEFAULT_USER_AGENT = "lapsync/0.1 (+https://liverc.com)"
HTTP_CACHE_FILENAME = "http_cache.db"


@dataclass(frozen=True, slots=True)
class LiveRcConfig:
    results_base_url: str
    resilience: ResilienceConfig


def _is_json_document(payload: object) -> bool:
    return isinstance(payload, dict)


def _cache_from_env() -> CacheConfig | None:
    backend = os.getenv("LAPSYNC_HTTP_CACHE", "").strip().lower()
    if not backend or backend == "off":
        return None
    if backend not in {"memory", "sqlite"}:
        raise ConfigurationError(
            f"LAPSYNC_HTTP_CACHE must be one of off, memory, sqlite; got {backend!r}"
        )
    return CacheConfig(
        enabled=True,
        backend="sqlite" if backend == "sqlite" else "memory",
        sqlite_path=str(data_dir() / HTTP_CACHE_FILENAME) if backend == "sqlite" else None,
        default_ttl_seconds=env_float("LAPSYNC_HTTP_CACHE_TTL_SECONDS", 300.0),
        should_cache=_is_json_document,
    )


def get_liverc_config() -> LiveRcConfig:
    base_url = env_str("LIVERC_RESULTS_BASE_URL", DEFAULT_LIVERC_RESULTS_BASE_URL).rstrip("/")

    resilience = ResilienceConfig(
        name="liverc",
        timeout_seconds=env_float("LIVERC_TIMEOUT_SECONDS", 30.0, minimum=1.0),
        ratelimit=RateLimit(
            max_calls=env_int("LIVERC_MAX_CALLS_PER_SECOND", 4),
            per_seconds=1.0,
        ),
        retry=RetryPolicy(total=env_int("LIVERC_MAX_RETRIES", 3, minimum=0)),
        cache=_cache_from_env(),
        default_headers={
            "Accept": "application/json",
            "User-Agent": env_str("LIVERC_USER_AGENT", DEFAULT_USER_AGENT),
        },
    )

    return LiveRcConfig(results_base_url=base_url, resilience=resilience)
