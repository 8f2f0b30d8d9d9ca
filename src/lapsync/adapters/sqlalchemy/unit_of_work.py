"""SQLAlchemy-backed units of work for race imports and the job queue."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from lapsync.adapters.sqlalchemy.mappings import start_mappers
from lapsync.adapters.sqlalchemy.migrations import upgrade_head
from lapsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyEntrantRepository,
    SqlAlchemyEventRepository,
    SqlAlchemyImportJobRepository,
    SqlAlchemyLapRepository,
    SqlAlchemyRaceClassRepository,
    SqlAlchemySessionRepository,
)
from lapsync.config import get_database_config
from lapsync.domain.errors import PersistenceUnavailable
from lapsync.domain.ports.unit_of_work import (
    JobRepositories,
    RaceRepositories,
    RepositoryCollection,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

_UNAVAILABLE = (OperationalError, InterfaceError)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call lapsync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, apply migrations and prepare the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    start_mappers()
    try:
        upgrade_head(engine=resolved_engine)
    except _UNAVAILABLE as exc:
        raise PersistenceUnavailable(
            "Database could not be reached", details={"url": str(resolved_engine.url)}
        ) from exc

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Connection-level failures (``OperationalError``, ``InterfaceError``) surface as
    ``PersistenceUnavailable``.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self.session.close()
            self.session = None
        if isinstance(exc_value, _UNAVAILABLE):
            raise PersistenceUnavailable("Database could not be reached") from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except _UNAVAILABLE as exc:
            raise PersistenceUnavailable("Database could not be reached") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyRaceUnitOfWork(BaseSqlAlchemyUnitOfWork[RaceRepositories]):
    """Unit of work for reconciling one race."""

    def _build_repositories(self, session: Session) -> RaceRepositories:
        return RaceRepositories(
            events=SqlAlchemyEventRepository(session),
            race_classes=SqlAlchemyRaceClassRepository(session),
            sessions=SqlAlchemySessionRepository(session),
            entrants=SqlAlchemyEntrantRepository(session),
            laps=SqlAlchemyLapRepository(session),
        )


class SqlAlchemyJobUnitOfWork(BaseSqlAlchemyUnitOfWork[JobRepositories]):
    """Unit of work for a single job-queue operation."""

    def _build_repositories(self, session: Session) -> JobRepositories:
        return JobRepositories(jobs=SqlAlchemyImportJobRepository(session))


if TYPE_CHECKING:
    from lapsync.domain.ports.unit_of_work import JobUnitOfWork, RaceUnitOfWork

    _race_uow: RaceUnitOfWork = SqlAlchemyRaceUnitOfWork()
    _job_uow: JobUnitOfWork = SqlAlchemyJobUnitOfWork()
