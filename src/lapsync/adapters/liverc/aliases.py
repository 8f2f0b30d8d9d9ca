"""Field alias tables for LiveRC documents.

LiveRC feeds name the same field differently depending on the club software
version. Each entity type has one table mapping a canonical field to its ordered
list of accepted upstream keys (dotted keys descend into nested objects). A
single pass, ``normalise_record``, resolves every canonical field: the first
alias whose value is present *and* parseable as the field kind wins.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import Any, Final, cast

log = getLogger(__name__)


class FieldKind(StrEnum):
    IDENTIFIER = "identifier"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    RECORDS = "records"


@dataclass(frozen=True, slots=True)
class FieldAlias:
    name: str
    keys: tuple[str, ...]
    kind: FieldKind = FieldKind.TEXT
    required: bool = False


type AliasTable = tuple[FieldAlias, ...]


ENTRY_ALIASES: Final[AliasTable] = (
    FieldAlias("entry_id", ("entry_id", "id", "entryId"), FieldKind.IDENTIFIER, required=True),
    FieldAlias("display_name", ("display_name", "name", "displayName"), required=True),
    FieldAlias("car_number", ("car_number", "carNumber"), FieldKind.IDENTIFIER),
    FieldAlias("withdrawn", ("withdrawn", "is_withdrawn", "isWithdrawn"), FieldKind.BOOLEAN),
    FieldAlias("transponder_id", ("transponder_id", "transponderId"), FieldKind.IDENTIFIER),
)

ENTRY_LIST_ALIASES: Final[AliasTable] = (
    FieldAlias(
        "event_id",
        ("event.event_id", "event.id", "event_info.event_id", "event_info.id", "meta.event.id",
         "event_id", "eventId"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias(
        "event_name",
        ("event.event_name", "event.name", "event_info.name", "meta.event.name", "event_name"),
    ),
    FieldAlias(
        "class_id",
        ("class.class_id", "class.id", "class_info.class_id", "class_info.id", "meta.class.id",
         "class_id", "classId"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias(
        "class_name",
        ("class.class_name", "class.name", "class_info.name", "meta.class.name", "class_name"),
    ),
    FieldAlias(
        "class_code",
        ("class.class_code", "class.code", "class_info.code", "meta.class.code", "class_code"),
    ),
    FieldAlias("entries", ("entries", "entry_list", "data"), FieldKind.RECORDS),
)

PENALTY_ALIASES: Final[AliasTable] = (
    FieldAlias("duration_seconds", ("seconds", "duration", "duration_seconds"), FieldKind.NUMBER),
    FieldAlias("reason", ("reason", "description")),
)

LAP_ALIASES: Final[AliasTable] = (
    FieldAlias("entry_id", ("entry_id", "driver_id", "entryId"), FieldKind.IDENTIFIER),
    FieldAlias("driver_name", ("driver_name", "name", "driverName"), required=True),
    FieldAlias("lap_number", ("lap", "lap_number", "number"), FieldKind.INTEGER, required=True),
    FieldAlias(
        "lap_time_seconds",
        ("lap_time", "lapTime", "time", "seconds"),
        FieldKind.NUMBER,
        required=True,
    ),
    FieldAlias("is_outlap", ("is_outlap", "outlap", "isOutlap"), FieldKind.BOOLEAN),
    FieldAlias("penalties", ("penalties",), FieldKind.RECORDS),
)

RACE_RESULT_ALIASES: Final[AliasTable] = (
    FieldAlias(
        "event_id",
        ("event_id", "eventId", "event.event_id", "event.eventId", "event.id"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias("event_name", ("event_name", "event.name")),
    FieldAlias(
        "class_id",
        ("class_id", "classId", "class.class_id", "class.classId", "class.id"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias("class_name", ("class_name", "class.name")),
    FieldAlias("class_code", ("class_code", "class.code")),
    FieldAlias(
        "round_id",
        ("round_id", "roundId", "round.round_id", "round.roundId", "round.id"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias("round_name", ("round_name", "round.name")),
    FieldAlias(
        "race_id",
        ("race_id", "raceId", "race.race_id", "race.raceId", "race.id"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias("race_name", ("race_name", "race.name")),
    FieldAlias("session_type", ("session_type", "type", "sessionType")),
    FieldAlias("start_time", ("start_time", "startTime", "scheduled_start")),
    FieldAlias("laps", ("laps", "results", "lap_data"), FieldKind.RECORDS),
)

SESSION_SUMMARY_ALIASES: Final[AliasTable] = (
    FieldAlias("class_slug", ("class_slug", "classSlug", "class"), required=True),
    FieldAlias("round_slug", ("round_slug", "roundSlug", "round"), required=True),
    FieldAlias("race_slug", ("race_slug", "raceSlug", "race", "slug"), required=True),
    FieldAlias("class_name", ("class_name", "className", "class")),
    FieldAlias("session_type", ("session_type", "type", "sessionType")),
    FieldAlias("heat_label", ("heat_label", "heat", "heatLabel", "name")),
    FieldAlias(
        "driver_count",
        ("driver_count", "drivers", "entries", "driverCount"),
        FieldKind.INTEGER,
    ),
    FieldAlias("lap_count", ("lap_count", "laps", "lapCount", "total_laps"), FieldKind.INTEGER),
)

EVENT_OVERVIEW_ALIASES: Final[AliasTable] = (
    FieldAlias(
        "event_id",
        ("event_id", "eventId", "event.event_id", "event.id", "id"),
        FieldKind.IDENTIFIER,
    ),
    FieldAlias("event_name", ("event_name", "eventName", "event.name", "name")),
    FieldAlias("sessions", ("sessions", "races", "results", "data"), FieldKind.RECORDS),
)

_MISSING: Final = object()


def _lookup(record: Mapping[str, Any], key: str) -> object:
    current: object = record
    for part in key.split("."):
        if not isinstance(current, Mapping):
            return _MISSING
        mapping = cast(Mapping[str, Any], current)
        if part not in mapping:
            return _MISSING
        current = mapping[part]
    return current


def _parse_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _parse(value: object, kind: FieldKind) -> object:  # noqa: PLR0911
    """Return the parsed value, or ``_MISSING`` when ``value`` is unusable for ``kind``."""

    if value is None:
        return _MISSING
    match kind:
        case FieldKind.TEXT:
            if isinstance(value, str) and value.strip():
                return value.strip()
            return _MISSING
        case FieldKind.IDENTIFIER:
            if isinstance(value, bool):
                return _MISSING
            if isinstance(value, int):
                return str(value)
            if isinstance(value, float) and value.is_integer():
                return str(int(value))
            if isinstance(value, str) and value.strip():
                return value.strip()
            return _MISSING
        case FieldKind.NUMBER:
            number = _parse_number(value)
            return _MISSING if number is None else number
        case FieldKind.INTEGER:
            number = _parse_number(value)
            if number is None or not number.is_integer():
                return _MISSING
            return int(number)
        case FieldKind.BOOLEAN:
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
                return value.strip().lower() == "true"
            return _MISSING
        case FieldKind.RECORDS:
            if isinstance(value, list):
                items = cast(list[object], value)
                return [cast(dict[str, Any], item) for item in items if isinstance(item, dict)]
            return _MISSING


def normalise_record(record: Mapping[str, Any], table: AliasTable) -> dict[str, Any] | None:
    """Resolve ``record`` against ``table``.

    Returns a dict keyed by canonical field names (absent optional fields omitted), or
    ``None`` when a required field has no usable alias.
    """

    resolved: dict[str, Any] = {}
    for alias in table:
        for key in alias.keys:
            parsed = _parse(_lookup(record, key), alias.kind)
            if parsed is not _MISSING:
                resolved[alias.name] = parsed
                break
        else:
            if alias.required:
                log.debug("Dropping upstream record without %s (tried %s)", alias.name, alias.keys)
                return None
    return resolved


def usable_records(records: list[dict[str, Any]], table: AliasTable) -> list[dict[str, Any]]:
    """Keep the raw rows that resolve every required field of ``table``."""

    usable = [record for record in records if normalise_record(record, table) is not None]
    dropped = len(records) - len(usable)
    if dropped:
        log.debug("Dropped %s of %s upstream rows missing required fields", dropped, len(records))
    return usable
