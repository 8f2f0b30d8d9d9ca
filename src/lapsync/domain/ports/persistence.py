"""Ports for persisting racing data and import jobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from lapsync.domain.model import (
    Entrant,
    Event,
    ImportJob,
    ImportJobItem,
    Lap,
    RaceClass,
    Session,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class EventUpsert:
    source_event_id: str
    source_url: str
    name: str


@dataclass(frozen=True, slots=True)
class RaceClassUpsert:
    event_id: UUID
    class_code: str
    source_url: str
    name: str


@dataclass(frozen=True, slots=True)
class SessionUpsert:
    event_id: UUID
    race_class_id: UUID
    source_session_id: str
    source_url: str
    name: str
    scheduled_start: datetime | None = None


@dataclass(frozen=True, slots=True)
class EntrantUpsert:
    """Entrant identity. Keyed by source id, or by display name within the session."""

    event_id: UUID
    race_class_id: UUID
    session_id: UUID
    display_name: str
    source_entrant_id: str | None = None
    car_number: str | None = None
    source_transponder_id: str | None = None


@dataclass(frozen=True, slots=True)
class EventState:
    """What is already stored for an event, used to classify plan items."""

    event_id: UUID
    session_count: int
    sessions_with_laps: int
    lap_count: int
    entrant_count: int


@runtime_checkable
class EventRepository(Protocol):
    def upsert_by_source(self, data: EventUpsert) -> Event: ...

    def get_state(self, refs: Sequence[str]) -> EventState | None:
        """Return stored counts for the first event whose source id or URL is in ``refs``."""
        ...


@runtime_checkable
class RaceClassRepository(Protocol):
    def upsert_by_source(self, data: RaceClassUpsert) -> RaceClass: ...


@runtime_checkable
class SessionRepository(Protocol):
    def upsert_by_source(self, data: SessionUpsert) -> Session: ...


@runtime_checkable
class EntrantRepository(Protocol):
    def upsert_by_source(self, data: EntrantUpsert) -> Entrant: ...

    def list_for_session(self, session_id: UUID) -> list[Entrant]: ...


@runtime_checkable
class LapRepository(Protocol):
    def replace_for_entrant(
        self,
        entrant_id: UUID,
        session_id: UUID,
        laps: Sequence[Lap],
    ) -> None:
        """Delete every stored lap of the entrant in the session, then insert ``laps``."""
        ...

    def list_for_session(self, session_id: UUID) -> list[Lap]: ...


@runtime_checkable
class ImportJobRepository(Protocol):
    def add(self, job: ImportJob) -> None: ...

    def get(self, job_id: UUID) -> ImportJob | None: ...

    def get_item(self, item_id: UUID) -> ImportJobItem | None: ...

    def claim_next_queued(self, *, now: datetime) -> ImportJob | None:
        """Atomically move the oldest QUEUED job to RUNNING.

        The write is conditional on the row still being QUEUED; when another worker
        won the race the method returns ``None`` instead of raising.
        """
        ...
