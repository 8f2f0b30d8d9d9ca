"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, env_str
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .jobs import GuardrailLimits, JobConfig, get_job_config
from .liverc import LiveRcConfig, get_liverc_config
from .logging import configure_logging
from .storage import DatabaseConfig, data_dir, get_database_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "GuardrailLimits",
    "JobConfig",
    "LiveRcConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "data_dir",
    "env_float",
    "env_int",
    "env_str",
    "get_database_config",
    "get_job_config",
    "get_liverc_config",
]
