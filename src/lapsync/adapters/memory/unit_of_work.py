"""In-memory units of work.

A unit of work holds the database lock for its whole lifetime and works on a
private copy of the tables; ``commit`` publishes the copy, leaving without a
commit discards it.
"""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from lapsync.domain.ports.unit_of_work import (
    JobRepositories,
    RaceRepositories,
    RepositoryCollection,
)

from .repositories import (
    InMemoryEntrantRepository,
    InMemoryEventRepository,
    InMemoryImportJobRepository,
    InMemoryLapRepository,
    InMemoryRaceClassRepository,
    InMemorySessionRepository,
    InMemoryTables,
)

if TYPE_CHECKING:
    from types import TracebackType


class InMemoryDatabase:
    def __init__(self) -> None:
        self.tables = InMemoryTables()
        self.lock = threading.RLock()


class BaseInMemoryUnitOfWork[TRepositories: RepositoryCollection](ABC):
    def __init__(self, database: InMemoryDatabase) -> None:
        self.database = database
        self._working: InMemoryTables | None = None
        self._repositories: TRepositories | None = None
        self.commits = 0

    @abstractmethod
    def _build_repositories(self, tables: InMemoryTables) -> TRepositories: ...

    def __enter__(self) -> BaseInMemoryUnitOfWork[TRepositories]:
        self.database.lock.acquire()
        self._reset()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self._working = None
        self._repositories = None
        self.database.lock.release()
        return False

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._repositories

    def commit(self) -> None:
        if self._working is None:
            raise RuntimeError("Unit of work used outside of its context")
        self.database.tables = copy.deepcopy(self._working)
        self.commits += 1

    def rollback(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._working = copy.deepcopy(self.database.tables)
        self._repositories = self._build_repositories(self._working)


class InMemoryRaceUnitOfWork(BaseInMemoryUnitOfWork[RaceRepositories]):
    def _build_repositories(self, tables: InMemoryTables) -> RaceRepositories:
        return RaceRepositories(
            events=InMemoryEventRepository(tables),
            race_classes=InMemoryRaceClassRepository(tables),
            sessions=InMemorySessionRepository(tables),
            entrants=InMemoryEntrantRepository(tables),
            laps=InMemoryLapRepository(tables),
        )


class InMemoryJobUnitOfWork(BaseInMemoryUnitOfWork[JobRepositories]):
    def _build_repositories(self, tables: InMemoryTables) -> JobRepositories:
        return JobRepositories(jobs=InMemoryImportJobRepository(tables))
