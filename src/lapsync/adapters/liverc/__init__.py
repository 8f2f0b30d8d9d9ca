"""LiveRC upstream adapter."""

from __future__ import annotations

from lapsync.config.liverc import get_liverc_config

from .client import LiveRcClient, build_results_url


def build_liverc_client() -> LiveRcClient:
    return LiveRcClient(config=get_liverc_config())


__all__ = ["LiveRcClient", "build_liverc_client", "build_results_url"]
