"""Run the bundled Alembic revisions against the lapsync database."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from lapsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
PYPROJECT_PATH: Final[Path] = MIGRATIONS_PATH.parents[4] / "pyproject.toml"


def alembic_config(database_uri: str | None = None) -> Config:
    """Alembic config that always points at the scripts shipped with the package.

    In a source checkout ``[tool.alembic]`` from pyproject.toml is layered underneath, so
    the ``alembic`` command run from the repository root sees the same revisions.
    """

    config = Config(toml_file=str(PYPROJECT_PATH)) if PYPROJECT_PATH.is_file() else Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema to the latest revision, on ``engine`` when one is given."""

    if engine is None:
        command.upgrade(alembic_config(database_uri or get_database_config().uri), "head")
        return

    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
