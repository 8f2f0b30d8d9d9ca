from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from lapsync.domain.errors import InvalidPayload, InvalidReference, UpstreamUnavailable
from lapsync.domain.reconciliation import (
    RaceImporter,
    build_lap_id,
    entry_list_from_laps,
    title_from_slug,
)
from tests.helpers.liverc import (
    make_entry,
    make_lap,
    race_url,
    summer_cup_entry_list,
    summer_cup_race_result,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from lapsync.adapters.memory import InMemoryDatabase, InMemoryRaceUnitOfWork
    from tests.helpers.liverc import FakeUpstreamClient

A_MAIN_URL = race_url("summer-cup", "pro-buggy", "round-1", "a-main")
SESSION_KEY = "evt-1:cls-1:rnd-1:race-1"


@pytest.fixture
def importer(
    upstream: FakeUpstreamClient,
    race_unit_of_work: Callable[[], InMemoryRaceUnitOfWork],
) -> RaceImporter:
    return RaceImporter(upstream=upstream, unit_of_work_factory=race_unit_of_work)


def _lap_id(entrant: str, lap_number: int) -> str:
    return build_lap_id(
        event_id="evt-1",
        session_id=SESSION_KEY,
        race_id="race-1",
        entrant_source_id=entrant,
        lap_number=lap_number,
    )


def test_import_skips_unknown_entrants(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), summer_cup_race_result())

    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.entrants_processed == 1
    assert summary.laps_imported == 3
    assert summary.skipped_entrant_count == 1
    assert summary.skipped_lap_count == 2
    assert summary.skipped_outlap_count == 0
    assert summary.event_name == "Summer Cup"
    assert summary.session_name == "A Main"
    assert summary.source_url == A_MAIN_URL

    tables = memory_database.tables
    assert [event.source_event_id for event in tables.events.values()] == ["evt-1"]
    assert [rc.class_code for rc in tables.race_classes.values()] == ["PRO-BUGGY"]
    assert [s.source_session_id for s in tables.sessions.values()] == [SESSION_KEY]
    assert [e.source_entrant_id for e in tables.entrants.values()] == ["e1"]
    assert sorted(tables.laps) == sorted(_lap_id("e1", n) for n in (1, 2, 3))
    assert sorted(lap.lap_time_ms for lap in tables.laps.values()) == [30500, 30900, 31234]


def test_reimport_is_idempotent(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), summer_cup_race_result())

    first = importer.import_from_url(A_MAIN_URL)
    snapshot = set(memory_database.tables.laps)
    second = importer.import_from_url(A_MAIN_URL)

    assert second == first
    assert second.as_payload() == first.as_payload()
    assert set(memory_database.tables.laps) == snapshot
    assert len(memory_database.tables.events) == 1
    assert len(memory_database.tables.sessions) == 1
    assert len(memory_database.tables.entrants) == 1


def test_reimport_replaces_the_full_lap_set(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    result = summer_cup_race_result()
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)
    importer.import_from_url(A_MAIN_URL)

    shortened = replace(result, laps=result.laps[:2])
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), shortened)
    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.laps_imported == 2
    assert sorted(memory_database.tables.laps) == sorted([_lap_id("e1", 1), _lap_id("e1", 2)])


def test_entrant_missing_from_new_result_loses_stored_laps(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    result = summer_cup_race_result()
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)
    importer.import_from_url(A_MAIN_URL)

    only_ghost = replace(result, laps=result.laps[3:])
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), only_ghost)
    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.laps_imported == 0
    assert summary.entrants_processed == 0
    assert memory_database.tables.laps == {}
    assert len(memory_database.tables.entrants) == 1


def test_withdrawn_entrants_are_skipped_without_counting(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
    caplog: pytest.LogCaptureFixture,
) -> None:
    entry_list = replace(
        summer_cup_entry_list(),
        entries=(make_entry("e1", "Alice Racer"), make_entry("e2", "Bob", withdrawn=True)),
    )
    result = replace(
        summer_cup_race_result(),
        laps=(make_lap("e1", 1, 30.0), make_lap("e2", 1, 31.0), make_lap("e2", 2, 31.5)),
    )
    upstream.add_race(A_MAIN_URL, entry_list, result)

    with caplog.at_level(logging.DEBUG, logger="lapsync.domain.reconciliation"):
        summary = importer.import_from_url(A_MAIN_URL)

    assert "withdrawn_entrant" in caplog.text
    assert summary.entrants_processed == 1
    assert summary.laps_imported == 1
    assert summary.skipped_entrant_count == 0
    assert summary.skipped_lap_count == 0
    assert list(memory_database.tables.laps) == [_lap_id("e1", 1)]


def test_outlaps_are_excluded_unless_requested(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
) -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(make_lap("e1", 0, 55.0, is_outlap=True), make_lap("e1", 1, 30.0)),
    )
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)

    excluded = importer.import_from_url(A_MAIN_URL)
    included = importer.import_from_url(A_MAIN_URL, include_outlaps=True)

    assert (excluded.laps_imported, excluded.skipped_outlap_count) == (1, 1)
    assert (included.laps_imported, included.skipped_outlap_count) == (2, 0)
    assert included.include_outlaps is True


def test_laps_rounding_to_zero_milliseconds_are_skipped(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
) -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(make_lap("e1", 1, 0.0004), make_lap("e1", 2, -3.0), make_lap("e1", 3, 30.0)),
    )
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)

    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.laps_imported == 1
    assert summary.skipped_lap_count == 2


def test_laps_without_entry_id_match_by_display_name(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(make_lap(None, 1, 30.0, driver_name=" Bob   Builder "),),
    )
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)

    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.entrants_processed == 1
    assert list(memory_database.tables.laps) == [_lap_id("e2", 1)]


def test_id_and_name_keyed_laps_of_one_entrant_are_merged(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(
            make_lap("e2", 1, 31.0, driver_name="Bob Builder"),
            make_lap("e2", 2, 30.7, driver_name="Bob Builder"),
            make_lap(None, 3, 30.4, driver_name="Bob Builder"),
        ),
    )
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)

    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.entrants_processed == 1
    assert summary.laps_imported == 3
    assert sorted(memory_database.tables.laps) == sorted(_lap_id("e2", n) for n in (1, 2, 3))
    assert len(memory_database.tables.entrants) == 1


def test_merged_groups_collapse_repeated_lap_numbers(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(
            make_lap("e2", 1, 31.0, driver_name="Bob Builder"),
            make_lap(None, 1, 30.2, driver_name="Bob Builder"),
        ),
    )
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)

    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.laps_imported == 1
    assert [lap.lap_time_ms for lap in memory_database.tables.laps.values()] == [30200]


def test_duplicate_lap_numbers_collapse_onto_one_row(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(make_lap("e1", 1, 30.0), make_lap("e1", 1, 29.5)),
    )
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), result)

    summary = importer.import_from_url(A_MAIN_URL)

    assert summary.laps_imported == 1
    assert len(memory_database.tables.laps) == 1


def test_missing_upstream_identifiers_fall_back_to_slugs(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    entry_list = replace(summer_cup_entry_list(), event_id=None, event_name=None, class_code=None)
    result = replace(
        summer_cup_race_result(),
        event_id=None,
        event_name=None,
        class_id=None,
        class_name=None,
        round_id=None,
        race_id=None,
        race_name=None,
    )
    upstream.add_race(A_MAIN_URL, entry_list, result)

    summary = importer.import_from_url(A_MAIN_URL)

    (event,) = memory_database.tables.events.values()
    (session,) = memory_database.tables.sessions.values()
    (race_class,) = memory_database.tables.race_classes.values()
    assert event.source_event_id == "summer-cup"
    assert event.name == "Summer Cup"
    assert race_class.class_code == "PRO-BUGGY"
    assert race_class.name == "Pro Buggy"
    assert session.source_session_id == "summer-cup:pro-buggy:round-1:a-main"
    assert summary.session_name == "A Main"
    assert summary.race_id == "a-main"


def test_fetch_failure_aborts_before_any_write(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
    memory_database: InMemoryDatabase,
) -> None:
    upstream.add_race(A_MAIN_URL, summer_cup_entry_list(), summer_cup_race_result())
    upstream.fail("a-main", UpstreamUnavailable("LiveRC request failed", url=A_MAIN_URL))

    with pytest.raises(UpstreamUnavailable):
        importer.import_from_url(A_MAIN_URL)

    assert memory_database.tables.events == {}
    assert memory_database.tables.laps == {}


def test_invalid_reference_is_rejected_before_fetching(
    importer: RaceImporter,
    upstream: FakeUpstreamClient,
) -> None:
    with pytest.raises(InvalidReference):
        importer.import_from_url("https://liverc.com/results/summer-cup")

    assert upstream.calls == []


def test_import_from_payload_derives_entrants_from_laps(
    importer: RaceImporter,
    memory_database: InMemoryDatabase,
) -> None:
    payload = {
        "eventId": "evt-7",
        "event": {"name": "Winter Series"},
        "classId": "cls-2",
        "raceId": "race-3",
        "laps": [
            {"entry_id": "e1", "driver_name": "Alice", "lap": 1, "lap_time": 30.1},
            {"driver_name": "Carol", "lap": 1, "lap_time": 31.0},
            {"driver_name": "Carol", "lap": 2, "lap_time": 30.8},
        ],
    }

    summary = importer.import_from_payload(payload)

    assert summary.entrants_processed == 2
    assert summary.laps_imported == 3
    assert summary.skipped_entrant_count == 0
    assert summary.source_url == "uploaded-file://evt-7/cls-2/upload/race-3"
    (event,) = memory_database.tables.events.values()
    assert event.source_url == "uploaded-file://evt-7"
    assert event.name == "Winter Series"
    sources = sorted(e.source_entrant_id or "" for e in memory_database.tables.entrants.values())
    assert sources == ["e1", "name:Carol"]


def test_import_from_payload_requires_identifiers_and_laps(importer: RaceImporter) -> None:
    with pytest.raises(InvalidPayload) as excinfo:
        importer.import_from_payload({"eventId": "evt-7"})

    assert excinfo.value.code == "INVALID_RACE_RESULT_PAYLOAD"
    assert excinfo.value.status == 422
    assert excinfo.value.details == {
        "missingIdentifiers": ["classId", "raceId"],
        "hasLapData": False,
    }


def test_entry_list_from_laps_keeps_first_occurrence() -> None:
    result = replace(
        summer_cup_race_result(),
        laps=(
            make_lap("e1", 1, 30.0, driver_name="Alice"),
            make_lap("e1", 2, 30.0, driver_name="Alice R."),
            make_lap(None, 1, 30.0, driver_name="Dan  Smith"),
        ),
    )

    entries = entry_list_from_laps(result).entries

    assert [(entry.entry_id, entry.display_name) for entry in entries] == [
        ("e1", "Alice"),
        ("name:Dan Smith", "Dan  Smith"),
    ]


def test_title_from_slug() -> None:
    assert title_from_slug("summer-cup_2024") == "Summer Cup 2024"
    assert title_from_slug("a--main") == "A Main"
