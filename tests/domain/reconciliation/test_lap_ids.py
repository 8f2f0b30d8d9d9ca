from __future__ import annotations

import hashlib

from lapsync.domain.reconciliation import build_lap_id, lap_time_ms, upstream_session_id


def test_lap_id_is_sha256_of_pipe_joined_upstream_identifiers() -> None:
    expected = hashlib.sha256(b"evt-1|evt-1:cls-1:rnd-1:race-1|race-1|e1|3").hexdigest()

    lap_id = build_lap_id(
        event_id="evt-1",
        session_id="evt-1:cls-1:rnd-1:race-1",
        race_id="race-1",
        entrant_source_id="e1",
        lap_number=3,
    )

    assert lap_id == expected
    assert len(lap_id) == 64


def test_lap_id_changes_with_any_component() -> None:
    base = {
        "event_id": "evt-1",
        "session_id": "s",
        "race_id": "race-1",
        "entrant_source_id": "e1",
        "lap_number": 1,
    }

    assert build_lap_id(**base) != build_lap_id(**{**base, "lap_number": 2})
    assert build_lap_id(**base) != build_lap_id(**{**base, "entrant_source_id": "e2"})


def test_upstream_session_id_skips_empty_segments() -> None:
    assert upstream_session_id("evt-1", "cls-1", "rnd-1", "race-1", fallback="x") == (
        "evt-1:cls-1:rnd-1:race-1"
    )
    assert upstream_session_id("evt-1", None, "", "race-1", fallback="x") == "evt-1:race-1"
    assert upstream_session_id(None, "", fallback="https://x") == "https://x"


def test_lap_time_ms_rounds_to_nearest_millisecond() -> None:
    assert lap_time_ms(31.2) == 31200
    assert lap_time_ms(30.9996) == 31000
    assert lap_time_ms(30.0004) == 30000
    assert lap_time_ms(0.0004) == 0
