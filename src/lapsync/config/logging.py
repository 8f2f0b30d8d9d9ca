"""Root logger setup for the CLI and the import worker."""

from __future__ import annotations

import logging

from .env import env_str

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Configure the root logger. ``LAPSYNC_LOG_LEVEL`` applies when ``level`` is omitted."""

    resolved = level if level is not None else env_str("LAPSYNC_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(logging.getLogger().level, logging.WARNING))
