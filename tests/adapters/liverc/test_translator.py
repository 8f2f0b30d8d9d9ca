from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from lapsync.adapters.liverc.schema import (
    LiveRcEntry,
    LiveRcEntryList,
    LiveRcEventOverview,
    LiveRcLap,
    LiveRcRaceResult,
)
from lapsync.adapters.liverc.translator import (
    parse_session_type,
    parse_start_time,
    translate_entry_list,
    translate_event_overview,
    translate_race_result,
)
from lapsync.domain.model import SessionType


def test_entry_list_translation_drops_rows_without_identity() -> None:
    model = LiveRcEntryList.model_validate(
        {
            "event": {"id": 101, "name": "Summer Cup"},
            "class": {"id": 7, "name": "Pro Buggy", "code": "PB"},
            "entries": [
                {"entryId": "e1", "displayName": "Alice", "carNumber": 7},
                {"id": "e2", "name": "Bob", "isWithdrawn": "true"},
                {"name": "No Id"},
                "garbage",
            ],
        }
    )

    entry_list = translate_entry_list(model)

    assert entry_list.event_id == "101"
    assert entry_list.class_code == "PB"
    assert [entry.entry_id for entry in entry_list.entries] == ["e1", "e2"]
    assert entry_list.entries[0].car_number == "7"
    assert entry_list.entries[1].withdrawn is True


def test_race_result_translation_resolves_nested_identifiers() -> None:
    model = LiveRcRaceResult.model_validate(
        {
            "event": {"eventId": "evt-1", "name": "Summer Cup"},
            "class": {"classId": "cls-1", "name": "Pro Buggy"},
            "round": {"id": "rnd-1", "name": "Round 1"},
            "race": {"raceId": 99, "name": "A Main"},
            "type": "main",
            "startTime": "2024-06-01T10:00:00+02:00",
            "results": [
                {"driver_id": "e1", "driverName": "Alice", "number": 1, "lapTime": 31.2},
                {"entry_id": "e1", "name": "Alice", "lap": 2, "time": "30.9", "outlap": True},
                {"name": "Missing Time", "lap": 3},
            ],
        }
    )

    result = translate_race_result(model)

    assert (result.event_id, result.class_id, result.round_id, result.race_id) == (
        "evt-1",
        "cls-1",
        "rnd-1",
        "99",
    )
    assert result.race_name == "A Main"
    assert result.start_time_utc == datetime(2024, 6, 1, 8, 0, tzinfo=UTC)
    assert result.has_lap_data is True
    assert [lap.lap_number for lap in result.laps] == [1, 2]
    assert result.laps[0].entry_id == "e1"
    assert result.laps[1].is_outlap is True
    assert result.laps[1].lap_time_seconds == pytest.approx(30.9)


def test_race_result_without_lap_array_has_no_lap_data() -> None:
    result = translate_race_result(LiveRcRaceResult.model_validate({"event_id": "evt-1"}))

    assert result.laps == ()
    assert result.has_lap_data is False


def test_lap_penalties_are_translated() -> None:
    model = LiveRcRaceResult.model_validate(
        {
            "laps": [
                {
                    "entry_id": "e1",
                    "driver_name": "Alice",
                    "lap": 1,
                    "lap_time": 35,
                    "penalties": [{"seconds": "5", "reason": "cut"}, {}],
                }
            ]
        }
    )

    (lap,) = translate_race_result(model).laps

    assert len(lap.penalties) == 1
    assert lap.penalties[0].duration_seconds == 5.0
    assert lap.penalties[0].reason == "cut"


def test_event_overview_translation() -> None:
    model = LiveRcEventOverview.model_validate(
        {
            "eventId": "evt-1",
            "races": [
                {"class": "Pro Buggy", "round": "round-1", "race": "heat-1", "name": "Heat 1"},
                {
                    "class_slug": "pro-buggy",
                    "class_name": "Pro Buggy",
                    "round_slug": "mains",
                    "race_slug": "a-main",
                    "heat_label": "A Main",
                    "drivers": 10,
                    "laps": 320,
                },
                {"class_slug": "pro-buggy"},
            ],
        }
    )

    overview = translate_event_overview(
        model, event_slug="summer-cup", source_url="https://liverc.com/results/summer-cup"
    )

    assert overview.event_id == "evt-1"
    assert len(overview.sessions) == 2
    heat, main = overview.sessions
    assert heat.class_slug == "Pro Buggy"
    assert heat.session_type == SessionType.HEAT
    assert main.session_type == SessionType.MAIN
    assert (main.driver_count, main.lap_count) == (10, 320)


def test_models_reject_rows_missing_required_fields() -> None:
    with pytest.raises(ValidationError):
        LiveRcLap.model_validate({"name": "Alice", "lap": 1})
    with pytest.raises(ValidationError):
        LiveRcEntry.model_validate({"id": "e1"})


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-06-01T10:00:00Z", datetime(2024, 6, 1, 10, 0, tzinfo=UTC)),
        ("2024-06-01T10:00:00-0500", datetime(2024, 6, 1, 15, 0, tzinfo=UTC)),
        ("2024-06-01T10:00:00", None),
        ("yesterday", None),
        (None, None),
    ],
)
def test_parse_start_time_requires_explicit_timezone(
    value: str | None, expected: datetime | None
) -> None:
    assert parse_start_time(value) == expected


@pytest.mark.parametrize(
    ("value", "label", "expected"),
    [
        ("Main", None, SessionType.MAIN),
        ("A-Final", None, SessionType.MAIN),
        (None, "Heat 3", SessionType.HEAT),
        ("Qualifying", None, SessionType.QUALIFIER),
        ("open practice", None, SessionType.PRACTICE),
        ("race", "Round 1", SessionType.OTHER),
    ],
)
def test_parse_session_type(value: str | None, label: str | None, expected: SessionType) -> None:
    assert parse_session_type(value, label=label) == expected
