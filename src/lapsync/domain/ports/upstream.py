"""Port for the timing provider and the normalised records it yields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from lapsync.domain.model.enums import SessionType

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from lapsync.domain.references import EventReference, ParsedReference


@dataclass(frozen=True, slots=True)
class EntryListEntry:
    entry_id: str
    display_name: str
    car_number: str | None = None
    withdrawn: bool = False
    transponder_id: str | None = None


@dataclass(frozen=True, slots=True)
class EntryList:
    event_id: str | None = None
    event_name: str | None = None
    class_id: str | None = None
    class_name: str | None = None
    class_code: str | None = None
    entries: tuple[EntryListEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class LapPenalty:
    duration_seconds: float | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RaceLap:
    """One timed lap as published upstream.

    ``entry_id`` may be absent for feeds that only carry driver names; such laps are
    matched against the entry list by display name.
    """

    entry_id: str | None
    driver_name: str
    lap_number: int
    lap_time_seconds: float
    is_outlap: bool = False
    penalties: tuple[LapPenalty, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class RaceResult:
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
    start_time_utc: datetime | None = None
    laps: tuple[RaceLap, ...] = field(default_factory=tuple)
    has_lap_data: bool = True


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Sizing information for one session listed in an event overview."""

    class_slug: str
    round_slug: str
    race_slug: str
    class_name: str
    session_type: SessionType = SessionType.OTHER
    heat_label: str | None = None
    driver_count: int | None = None
    lap_count: int | None = None


@dataclass(frozen=True, slots=True)
class EventOverview:
    event_slug: str
    source_url: str
    event_id: str | None = None
    event_name: str | None = None
    sessions: tuple[SessionSummary, ...] = field(default_factory=tuple)


@runtime_checkable
class UpstreamClient(Protocol):
    """Fetches and normalises upstream documents. The ``fetch_*`` methods are coroutines."""

    async def fetch_entry_list(self, reference: ParsedReference) -> EntryList: ...

    async def fetch_race_result(self, reference: ParsedReference) -> RaceResult: ...

    async def fetch_event_overview(self, reference: EventReference) -> EventOverview: ...

    def race_reference(self, event: EventReference, session: SessionSummary) -> ParsedReference:
        """Build the race reference for ``session`` under ``event``."""
        ...

    def event_source_url(self, event: EventReference) -> str:
        """Canonical results URL of ``event`` (the persisted event ``source_url``)."""
        ...

    def parse_race_result(self, payload: Mapping[str, Any]) -> RaceResult:
        """Normalise an uploaded race-result document (raises ``InvalidPayload``)."""
        ...
