from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from lapsync.adapters.memory import (
    InMemoryDatabase,
    InMemoryJobUnitOfWork,
    InMemoryRaceUnitOfWork,
)
from lapsync.adapters.sqlalchemy import start_mappers
from lapsync.adapters.sqlalchemy.migrations import upgrade_head
from lapsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyJobUnitOfWork,
    SqlAlchemyRaceUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.liverc import FakeUpstreamClient

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_race_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyRaceUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyRaceUnitOfWork
    finally:
        shutdown()


@pytest.fixture
def sqlite_job_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyJobUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyJobUnitOfWork
    finally:
        shutdown()


@pytest.fixture
def memory_database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def race_unit_of_work(memory_database: InMemoryDatabase) -> Callable[[], InMemoryRaceUnitOfWork]:
    def factory() -> InMemoryRaceUnitOfWork:
        return InMemoryRaceUnitOfWork(memory_database)

    return factory


@pytest.fixture
def job_unit_of_work(memory_database: InMemoryDatabase) -> Callable[[], InMemoryJobUnitOfWork]:
    def factory() -> InMemoryJobUnitOfWork:
        return InMemoryJobUnitOfWork(memory_database)

    return factory


@pytest.fixture
def upstream() -> FakeUpstreamClient:
    return FakeUpstreamClient()
