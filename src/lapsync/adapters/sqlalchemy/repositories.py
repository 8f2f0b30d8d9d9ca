"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, distinct, func, or_, select, update

from lapsync.adapters.sqlalchemy.mappings import (
    entrant_table,
    event_table,
    import_job_item_table,
    import_job_table,
    lap_table,
    race_class_table,
    session_table,
)
from lapsync.domain.model import (
    Entrant,
    Event,
    ImportJob,
    ImportJobItem,
    JobState,
    Lap,
    RaceClass,
    utcnow,
)
from lapsync.domain.model import Session as RaceSession
from lapsync.domain.ports.persistence import EventState

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy import CursorResult
    from sqlalchemy.orm import Session

    from lapsync.domain.ports.persistence import (
        EntrantUpsert,
        EventUpsert,
        RaceClassUpsert,
        SessionUpsert,
    )


class SqlAlchemyEventRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_by_source(self, data: EventUpsert) -> Event:
        now = utcnow()
        stmt = select(Event).where(event_table.c.source_event_id == data.source_event_id)
        event = self.session.execute(stmt).scalar_one_or_none()
        if event is None:
            event = Event(
                source_event_id=data.source_event_id,
                source_url=data.source_url,
                name=data.name,
                created_at=now,
            )
            self.session.add(event)
        event.source_url = data.source_url
        event.name = data.name
        event.updated_at = now
        return event

    def get_state(self, refs: Sequence[str]) -> EventState | None:
        candidates = list(refs)
        if not candidates:
            return None
        stmt = (
            select(event_table.c.id)
            .where(
                or_(
                    event_table.c.source_event_id.in_(candidates),
                    event_table.c.source_url.in_(candidates),
                )
            )
            .order_by(event_table.c.created_at)
            .limit(1)
        )
        event_id = self.session.execute(stmt).scalar_one_or_none()
        if event_id is None:
            return None

        session_count = self.session.execute(
            select(func.count())
            .select_from(session_table)
            .where(session_table.c.event_id == event_id)
        ).scalar_one()
        lap_stats = self.session.execute(
            select(func.count(distinct(lap_table.c.session_id)), func.count(lap_table.c.id))
            .select_from(
                lap_table.join(session_table, lap_table.c.session_id == session_table.c.id)
            )
            .where(session_table.c.event_id == event_id)
        ).one()
        entrant_count = self.session.execute(
            select(func.count())
            .select_from(entrant_table)
            .where(entrant_table.c.event_id == event_id)
        ).scalar_one()
        return EventState(
            event_id=event_id,
            session_count=session_count,
            sessions_with_laps=lap_stats[0],
            lap_count=lap_stats[1],
            entrant_count=entrant_count,
        )


class SqlAlchemyRaceClassRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_by_source(self, data: RaceClassUpsert) -> RaceClass:
        now = utcnow()
        stmt = (
            select(RaceClass)
            .where(race_class_table.c.event_id == data.event_id)
            .where(race_class_table.c.class_code == data.class_code)
        )
        race_class = self.session.execute(stmt).scalar_one_or_none()
        if race_class is None:
            race_class = RaceClass(
                event_id=data.event_id,
                class_code=data.class_code,
                source_url=data.source_url,
                name=data.name,
                created_at=now,
            )
            self.session.add(race_class)
        race_class.source_url = data.source_url
        race_class.name = data.name
        race_class.updated_at = now
        return race_class


class SqlAlchemySessionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_by_source(self, data: SessionUpsert) -> RaceSession:
        now = utcnow()
        stmt = select(RaceSession).where(
            session_table.c.source_session_id == data.source_session_id
        )
        race_session = self.session.execute(stmt).scalar_one_or_none()
        if race_session is None:
            race_session = RaceSession(
                event_id=data.event_id,
                race_class_id=data.race_class_id,
                source_session_id=data.source_session_id,
                source_url=data.source_url,
                name=data.name,
                created_at=now,
            )
            self.session.add(race_session)
        race_session.event_id = data.event_id
        race_session.race_class_id = data.race_class_id
        race_session.source_url = data.source_url
        race_session.name = data.name
        race_session.scheduled_start = data.scheduled_start
        race_session.updated_at = now
        return race_session


class SqlAlchemyEntrantRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

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
            self.session.add(entrant)
        entrant.display_name = data.display_name
        entrant.source_entrant_id = data.source_entrant_id
        entrant.car_number = data.car_number
        entrant.source_transponder_id = data.source_transponder_id
        entrant.updated_at = now
        return entrant

    def list_for_session(self, session_id: uuid.UUID) -> list[Entrant]:
        stmt = (
            select(Entrant)
            .where(entrant_table.c.session_id == session_id)
            .order_by(entrant_table.c.display_name)
        )
        return list(self.session.execute(stmt).scalars())

    def _find(self, data: EntrantUpsert) -> Entrant | None:
        if data.source_entrant_id is not None:
            stmt = (
                select(Entrant)
                .where(entrant_table.c.event_id == data.event_id)
                .where(entrant_table.c.race_class_id == data.race_class_id)
                .where(entrant_table.c.session_id == data.session_id)
                .where(entrant_table.c.source_entrant_id == data.source_entrant_id)
            )
            entrant = self.session.execute(stmt).scalar_one_or_none()
            if entrant is not None:
                return entrant
        stmt = (
            select(Entrant)
            .where(entrant_table.c.session_id == data.session_id)
            .where(entrant_table.c.source_entrant_id.is_(None))
            .where(entrant_table.c.display_name == data.display_name)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()


class SqlAlchemyLapRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def replace_for_entrant(
        self,
        entrant_id: uuid.UUID,
        session_id: uuid.UUID,
        laps: Sequence[Lap],
    ) -> None:
        self.session.execute(
            delete(Lap)
            .where(lap_table.c.entrant_id == entrant_id)
            .where(lap_table.c.session_id == session_id)
            .execution_options(synchronize_session="fetch")
        )
        now = utcnow()
        for lap in laps:
            if lap.created_at is None:
                lap.created_at = now
        self.session.add_all(laps)

    def list_for_session(self, session_id: uuid.UUID) -> list[Lap]:
        stmt = (
            select(Lap)
            .where(lap_table.c.session_id == session_id)
            .order_by(lap_table.c.entrant_id, lap_table.c.lap_number)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyImportJobRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, job: ImportJob) -> None:
        self.session.add(job)

    def get(self, job_id: uuid.UUID) -> ImportJob | None:
        return self.session.get(ImportJob, job_id)

    def get_item(self, item_id: uuid.UUID) -> ImportJobItem | None:
        return self.session.get(ImportJobItem, item_id)

    def claim_next_queued(self, *, now: datetime) -> ImportJob | None:
        job_id = self._find_oldest_queued()
        if job_id is None:
            return None
        return self._claim(job_id, now=now)

    def _find_oldest_queued(self) -> uuid.UUID | None:
        stmt = (
            select(import_job_table.c.id)
            .where(import_job_table.c.state == JobState.QUEUED)
            .order_by(import_job_table.c.created_at)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _claim(self, job_id: uuid.UUID, *, now: datetime) -> ImportJob | None:
        """Compare-and-swap QUEUED -> RUNNING; ``None`` when another worker got there first."""

        result = cast(
            "CursorResult[Any]",
            self.session.execute(
                update(import_job_table)
                .where(import_job_table.c.id == job_id)
                .where(import_job_table.c.state == JobState.QUEUED)
                .values(state=JobState.RUNNING, progress_pct=0, message=None, updated_at=now)
            ),
        )
        if result.rowcount == 0:
            return None

        self.session.execute(
            update(import_job_item_table)
            .where(import_job_item_table.c.job_id == job_id)
            .where(import_job_item_table.c.state == JobState.QUEUED)
            .values(state=JobState.RUNNING)
        )
        return self.session.get(ImportJob, job_id, populate_existing=True)
