"""Translate validated LiveRC models into upstream port records."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from lapsync.domain.model import SessionType
from lapsync.domain.ports.upstream import (
    EntryList,
    EntryListEntry,
    EventOverview,
    LapPenalty,
    RaceLap,
    RaceResult,
    SessionSummary,
)

if TYPE_CHECKING:
    from .schema import (
        LiveRcEntryList,
        LiveRcEventOverview,
        LiveRcLap,
        LiveRcRaceResult,
        LiveRcSessionSummary,
    )

_EXPLICIT_TZ = re.compile(r"(?:[zZ]|[+-]\d{2}:?\d{2})$")


def parse_start_time(value: str | None) -> datetime | None:
    """Parse an ISO timestamp, but only when it names its timezone explicitly."""

    if not value:
        return None
    candidate = value.strip()
    if not _EXPLICIT_TZ.search(candidate):
        return None
    if candidate.endswith(("z", "Z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed.astimezone(UTC)


def _classify(text: str) -> SessionType:
    lowered = text.lower()
    if "main" in lowered or "final" in lowered:
        return SessionType.MAIN
    if "heat" in lowered:
        return SessionType.HEAT
    if "qual" in lowered:
        return SessionType.QUALIFIER
    if "practice" in lowered:
        return SessionType.PRACTICE
    return SessionType.OTHER


def parse_session_type(value: str | None, *, label: str | None = None) -> SessionType:
    """Classify from the declared type, falling back to the heat/race label."""

    for text in (value, label):
        if text:
            session_type = _classify(text)
            if session_type != SessionType.OTHER:
                return session_type
    return SessionType.OTHER


def translate_entry_list(model: LiveRcEntryList) -> EntryList:
    return EntryList(
        event_id=model.event_id,
        event_name=model.event_name,
        class_id=model.class_id,
        class_name=model.class_name,
        class_code=model.class_code,
        entries=tuple(
            EntryListEntry(
                entry_id=entry.entry_id,
                display_name=entry.display_name,
                car_number=entry.car_number,
                withdrawn=entry.withdrawn,
                transponder_id=entry.transponder_id,
            )
            for entry in model.entries
        ),
    )


def _translate_lap(lap: LiveRcLap) -> RaceLap:
    return RaceLap(
        entry_id=lap.entry_id,
        driver_name=lap.driver_name,
        lap_number=lap.lap_number,
        lap_time_seconds=lap.lap_time_seconds,
        is_outlap=lap.is_outlap,
        penalties=tuple(
            LapPenalty(duration_seconds=penalty.duration_seconds, reason=penalty.reason)
            for penalty in lap.penalties
            if penalty.duration_seconds is not None or penalty.reason
        ),
    )


def translate_race_result(model: LiveRcRaceResult) -> RaceResult:
    return RaceResult(
        event_id=model.event_id,
        event_name=model.event_name,
        class_id=model.class_id,
        class_name=model.class_name,
        class_code=model.class_code,
        round_id=model.round_id,
        round_name=model.round_name,
        race_id=model.race_id,
        race_name=model.race_name,
        session_type=model.session_type,
        start_time_utc=parse_start_time(model.start_time),
        laps=tuple(_translate_lap(lap) for lap in model.laps or ()),
        has_lap_data=model.laps is not None,
    )


def _translate_session(model: LiveRcSessionSummary) -> SessionSummary:
    return SessionSummary(
        class_slug=model.class_slug,
        round_slug=model.round_slug,
        race_slug=model.race_slug,
        class_name=model.class_name or model.class_slug,
        session_type=parse_session_type(model.session_type, label=model.heat_label),
        heat_label=model.heat_label,
        driver_count=model.driver_count,
        lap_count=model.lap_count,
    )


def translate_event_overview(
    model: LiveRcEventOverview,
    *,
    event_slug: str,
    source_url: str,
) -> EventOverview:
    return EventOverview(
        event_slug=event_slug,
        source_url=source_url,
        event_id=model.event_id,
        event_name=model.event_name,
        sessions=tuple(_translate_session(session) for session in model.sessions),
    )
