"""In-memory repositories over plain dictionaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lapsync.domain.model import (
    Entrant,
    Event,
    ImportJob,
    JobState,
    Lap,
    RaceClass,
    Session,
    utcnow,
)
from lapsync.domain.ports.persistence import EventState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from lapsync.domain.model import ImportJobItem
    from lapsync.domain.ports.persistence import (
        EntrantUpsert,
        EventUpsert,
        RaceClassUpsert,
        SessionUpsert,
    )


@dataclass(slots=True)
class InMemoryTables:
    events: dict[UUID, Event] = field(default_factory=dict)
    race_classes: dict[UUID, RaceClass] = field(default_factory=dict)
    sessions: dict[UUID, Session] = field(default_factory=dict)
    entrants: dict[UUID, Entrant] = field(default_factory=dict)
    laps: dict[str, Lap] = field(default_factory=dict)
    jobs: dict[UUID, ImportJob] = field(default_factory=dict)


class InMemoryEventRepository:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    def upsert_by_source(self, data: EventUpsert) -> Event:
        now = utcnow()
        event = next(
            (e for e in self._tables.events.values() if e.source_event_id == data.source_event_id),
            None,
        )
        if event is None:
            event = Event(
                source_event_id=data.source_event_id,
                source_url=data.source_url,
                name=data.name,
                created_at=now,
            )
            self._tables.events[event.id] = event
        event.source_url = data.source_url
        event.name = data.name
        event.updated_at = now
        return event

    def get_state(self, refs: Sequence[str]) -> EventState | None:
        candidates = set(refs)
        event = next(
            (
                e
                for e in self._tables.events.values()
                if e.source_event_id in candidates or e.source_url in candidates
            ),
            None,
        )
        if event is None:
            return None

        session_ids = {s.id for s in self._tables.sessions.values() if s.event_id == event.id}
        laps = [lap for lap in self._tables.laps.values() if lap.session_id in session_ids]
        return EventState(
            event_id=event.id,
            session_count=len(session_ids),
            sessions_with_laps=len({lap.session_id for lap in laps}),
            lap_count=len(laps),
            entrant_count=sum(
                1 for entrant in self._tables.entrants.values() if entrant.event_id == event.id
            ),
        )


class InMemoryRaceClassRepository:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    def upsert_by_source(self, data: RaceClassUpsert) -> RaceClass:
        now = utcnow()
        race_class = next(
            (
                rc
                for rc in self._tables.race_classes.values()
                if rc.event_id == data.event_id and rc.class_code == data.class_code
            ),
            None,
        )
        if race_class is None:
            race_class = RaceClass(
                event_id=data.event_id,
                class_code=data.class_code,
                source_url=data.source_url,
                name=data.name,
                created_at=now,
            )
            self._tables.race_classes[race_class.id] = race_class
        race_class.source_url = data.source_url
        race_class.name = data.name
        race_class.updated_at = now
        return race_class


class InMemorySessionRepository:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    def upsert_by_source(self, data: SessionUpsert) -> Session:
        now = utcnow()
        session = next(
            (
                s
                for s in self._tables.sessions.values()
                if s.source_session_id == data.source_session_id
            ),
            None,
        )
        if session is None:
            session = Session(
                event_id=data.event_id,
                race_class_id=data.race_class_id,
                source_session_id=data.source_session_id,
                source_url=data.source_url,
                name=data.name,
                created_at=now,
            )
            self._tables.sessions[session.id] = session
        session.event_id = data.event_id
        session.race_class_id = data.race_class_id
        session.source_url = data.source_url
        session.name = data.name
        session.scheduled_start = data.scheduled_start
        session.updated_at = now
        return session


class InMemoryEntrantRepository:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    def upsert_by_source(self, data: EntrantUpsert) -> Entrant:
        now = utcnow()
        entrant = self._find(data)
        if entrant is None:
            entrant = Entrant(
                event_id=data.event_id,
                race_class_id=data.race_class_id,
                session_id=data.session_id,
                display_name=data.display_name,
                created_at=now,
            )
            self._tables.entrants[entrant.id] = entrant
        entrant.display_name = data.display_name
        entrant.source_entrant_id = data.source_entrant_id
        entrant.car_number = data.car_number
        entrant.source_transponder_id = data.source_transponder_id
        entrant.updated_at = now
        return entrant

    def list_for_session(self, session_id: UUID) -> list[Entrant]:
        return [e for e in self._tables.entrants.values() if e.session_id == session_id]

    def _find(self, data: EntrantUpsert) -> Entrant | None:
        in_session = self.list_for_session(data.session_id)
        if data.source_entrant_id is not None:
            match = next(
                (
                    e
                    for e in in_session
                    if e.event_id == data.event_id
                    and e.race_class_id == data.race_class_id
                    and e.source_entrant_id == data.source_entrant_id
                ),
                None,
            )
            if match is not None:
                return match
        return next(
            (
                e
                for e in in_session
                if e.source_entrant_id is None and e.display_name == data.display_name
            ),
            None,
        )


class InMemoryLapRepository:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    def replace_for_entrant(
        self,
        entrant_id: UUID,
        session_id: UUID,
        laps: Sequence[Lap],
    ) -> None:
        stale = [
            lap_id
            for lap_id, lap in self._tables.laps.items()
            if lap.entrant_id == entrant_id and lap.session_id == session_id
        ]
        for lap_id in stale:
            del self._tables.laps[lap_id]
        now = utcnow()
        for lap in laps:
            if lap.created_at is None:
                lap.created_at = now
            self._tables.laps[lap.id] = lap

    def list_for_session(self, session_id: UUID) -> list[Lap]:
        laps = [lap for lap in self._tables.laps.values() if lap.session_id == session_id]
        return sorted(laps, key=lambda lap: (str(lap.entrant_id), lap.lap_number))


class InMemoryImportJobRepository:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    def add(self, job: ImportJob) -> None:
        self._tables.jobs[job.id] = job

    def get(self, job_id: UUID) -> ImportJob | None:
        return self._tables.jobs.get(job_id)

    def get_item(self, item_id: UUID) -> ImportJobItem | None:
        for job in self._tables.jobs.values():
            item = job.item(item_id)
            if item is not None:
                return item
        return None

    def claim_next_queued(self, *, now: datetime) -> ImportJob | None:
        queued = [job for job in self._tables.jobs.values() if job.state == JobState.QUEUED]
        if not queued:
            return None
        oldest = min(queued, key=lambda job: job.created_at)
        return self._claim(oldest.id, now=now)

    def _claim(self, job_id: UUID, *, now: datetime) -> ImportJob | None:
        job = self._tables.jobs.get(job_id)
        if job is None or job.state != JobState.QUEUED:
            return None
        job.claim(now=now)
        return job
