from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect

from lapsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyJobUnitOfWork,
    SqlAlchemyRaceUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from lapsync.domain.model import Event
from lapsync.domain.ports.persistence import EventUpsert

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine


def test_unit_of_work_requires_startup() -> None:
    shutdown()

    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyJobUnitOfWork()


def test_startup_refuses_to_reconfigure_without_force(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    try:
        assert configured_engine() is sqlite_engine
        with pytest.raises(StartupError):
            startup(engine=sqlite_engine)
    finally:
        shutdown()

    assert configured_engine() is None


def test_migrations_create_schema(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert {
        "event",
        "race_class",
        "session",
        "entrant",
        "lap",
        "import_job",
        "import_job_item",
    } <= tables


def test_repositories_require_an_open_session(
    sqlite_race_unit_of_work: Callable[[], SqlAlchemyRaceUnitOfWork],
) -> None:
    uow = sqlite_race_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_exit_without_commit_rolls_back(
    sqlite_race_unit_of_work: Callable[[], SqlAlchemyRaceUnitOfWork],
) -> None:
    with sqlite_race_unit_of_work() as uow:
        uow.repositories.events.upsert_by_source(
            EventUpsert(source_event_id="evt-1", source_url="u", name="Summer Cup")
        )

    with sqlite_race_unit_of_work() as uow:
        assert uow.session.query(Event).count() == 0


def test_exception_inside_context_rolls_back(
    sqlite_race_unit_of_work: Callable[[], SqlAlchemyRaceUnitOfWork],
) -> None:
    with pytest.raises(ValueError, match="boom"), sqlite_race_unit_of_work() as uow:
        uow.repositories.events.upsert_by_source(
            EventUpsert(source_event_id="evt-1", source_url="u", name="Summer Cup")
        )
        uow.session.flush()
        raise ValueError("boom")

    with sqlite_race_unit_of_work() as uow:
        assert uow.session.query(Event).count() == 0
