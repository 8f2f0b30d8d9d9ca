"""LiveRC response schemas.

Raw documents first go through the alias tables (``aliases.py``); the models below
then validate the canonical shape.
"""

from __future__ import annotations

from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .aliases import (
    ENTRY_ALIASES,
    ENTRY_LIST_ALIASES,
    EVENT_OVERVIEW_ALIASES,
    LAP_ALIASES,
    PENALTY_ALIASES,
    RACE_RESULT_ALIASES,
    SESSION_SUMMARY_ALIASES,
    AliasTable,
    normalise_record,
    usable_records,
)


class LiveRcBaseModel(BaseModel):
    """Model whose input is normalised through an alias table before validation."""

    model_config = ConfigDict(extra="ignore", frozen=True)
    ALIASES: ClassVar[AliasTable] = ()
    # canonical field -> alias table applied to each nested row
    NESTED: ClassVar[dict[str, AliasTable]] = {}

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        raw = cast(dict[str, Any], data)
        resolved = normalise_record(raw, cls.ALIASES)
        if resolved is None:
            missing = [alias.name for alias in cls.ALIASES if alias.required]
            raise ValueError(f"missing required fields: {', '.join(missing)}")
        for name, table in cls.NESTED.items():
            if name in resolved:
                resolved[name] = usable_records(resolved[name], table)
        return resolved


class LiveRcEntry(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = ENTRY_ALIASES

    entry_id: str
    display_name: str
    car_number: str | None = None
    withdrawn: bool = False
    transponder_id: str | None = None


class LiveRcEntryList(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = ENTRY_LIST_ALIASES
    NESTED: ClassVar[dict[str, AliasTable]] = {"entries": ENTRY_ALIASES}

    event_id: str | None = None
    event_name: str | None = None
    class_id: str | None = None
    class_name: str | None = None
    class_code: str | None = None
    entries: list[LiveRcEntry] = Field(default_factory=list)


class LiveRcPenalty(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = PENALTY_ALIASES

    duration_seconds: float | None = None
    reason: str | None = None


class LiveRcLap(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = LAP_ALIASES
    NESTED: ClassVar[dict[str, AliasTable]] = {"penalties": PENALTY_ALIASES}

    entry_id: str | None = None
    driver_name: str
    lap_number: int
    lap_time_seconds: float
    is_outlap: bool = False
    penalties: list[LiveRcPenalty] = Field(default_factory=list)


class LiveRcRaceResult(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = RACE_RESULT_ALIASES
    NESTED: ClassVar[dict[str, AliasTable]] = {"laps": LAP_ALIASES}

    event_id: str | None = None
    event_name: str | None = None
    class_id: str | None = None
    class_name: str | None = None
    class_code: str | None = None
    round_id: str | None = None
    round_name: str | None = None
    race_id: str | None = None
    race_name: str | None = None
    session_type: str | None = None
    start_time: str | None = None
    # None when the document carries no lap array at all
    laps: list[LiveRcLap] | None = None


class LiveRcSessionSummary(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = SESSION_SUMMARY_ALIASES

    class_slug: str
    round_slug: str
    race_slug: str
    class_name: str | None = None
    session_type: str | None = None
    heat_label: str | None = None
    driver_count: int | None = None
    lap_count: int | None = None


class LiveRcEventOverview(LiveRcBaseModel):
    ALIASES: ClassVar[AliasTable] = EVENT_OVERVIEW_ALIASES
    NESTED: ClassVar[dict[str, AliasTable]] = {"sessions": SESSION_SUMMARY_ALIASES}

    event_id: str | None = None
    event_name: str | None = None
    sessions: list[LiveRcSessionSummary] = Field(default_factory=list)
