"""SQLAlchemy adapter package for lapsync."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyEntrantRepository,
    SqlAlchemyEventRepository,
    SqlAlchemyImportJobRepository,
    SqlAlchemyLapRepository,
    SqlAlchemyRaceClassRepository,
    SqlAlchemySessionRepository,
)
from .unit_of_work import (
    SqlAlchemyJobUnitOfWork,
    SqlAlchemyRaceUnitOfWork,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyEntrantRepository",
    "SqlAlchemyEventRepository",
    "SqlAlchemyImportJobRepository",
    "SqlAlchemyJobUnitOfWork",
    "SqlAlchemyLapRepository",
    "SqlAlchemyRaceClassRepository",
    "SqlAlchemyRaceUnitOfWork",
    "SqlAlchemySessionRepository",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
