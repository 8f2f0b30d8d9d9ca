"""Where lapsync keeps its SQLite files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

DATABASE_FILENAME: Final[str] = "lapsync.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def data_dir(*, create: bool = False) -> Path:
    """``LAPSYNC_DATA_DIR``, else ``lapsync`` under the platform's user data directory."""

    override = os.getenv("LAPSYNC_DATA_DIR")
    if override:
        path = Path(override)
    elif os.name == "nt":
        path = Path(os.getenv("LOCALAPPDATA") or Path.home() / "AppData" / "Local") / "lapsync"
    else:
        path = Path(os.getenv("XDG_DATA_HOME") or Path.home() / ".local" / "share") / "lapsync"
    path = path.expanduser().resolve()
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def get_database_config() -> DatabaseConfig:
    uri = os.getenv("DATABASE_URI")
    if uri:
        return DatabaseConfig(uri=uri)
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{data_dir(create=True) / DATABASE_FILENAME}")
