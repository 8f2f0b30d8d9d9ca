"""
SQLAlchemy mappings for the racing model and the import job queue.
Timestamps are stored timezone-aware and always normalised to UTC.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from lapsync.domain.model import (
    Entrant,
    Event,
    ImportJob,
    ImportJobItem,
    ImportMode,
    JobState,
    Lap,
    RaceClass,
    TargetType,
)
from lapsync.domain.model import Session as RaceSession

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Racing tables ---------------------------------------------------------------

event_table = Table(
    "event",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("source_event_id", String, nullable=False),
    Column("source_url", String, nullable=False),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint("source_event_id", name="uq_event_source_event_id"),
    Index("ix_event_source_url", "source_url"),
)

race_class_table = Table(
    "race_class",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("event_id", UUIDColumnType, ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
    Column("class_code", String, nullable=False),
    Column("source_url", String, nullable=False),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint("event_id", "class_code", name="uq_race_class_event_id_class_code"),
)

session_table = Table(
    "session",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("event_id", UUIDColumnType, ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
    Column(
        "race_class_id",
        UUIDColumnType,
        ForeignKey("race_class.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("source_session_id", String, nullable=False),
    Column("source_url", String, nullable=False),
    Column("name", String, nullable=False),
    Column("scheduled_start", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint("source_session_id", name="uq_session_source_session_id"),
    Index("ix_session_event_id", "event_id"),
)

entrant_table = Table(
    "entrant",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("event_id", UUIDColumnType, ForeignKey("event.id", ondelete="CASCADE"), nullable=False),
    Column(
        "race_class_id",
        UUIDColumnType,
        ForeignKey("race_class.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "session_id", UUIDColumnType, ForeignKey("session.id", ondelete="CASCADE"), nullable=False
    ),
    Column("display_name", String, nullable=False),
    Column("source_entrant_id", String, nullable=True),
    Column("car_number", String, nullable=True),
    Column("source_transponder_id", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint(
        "event_id",
        "race_class_id",
        "session_id",
        "source_entrant_id",
        name="uq_entrant_source",
    ),
    Index("ix_entrant_session_id", "session_id"),
)

lap_table = Table(
    "lap",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column(
        "entrant_id", UUIDColumnType, ForeignKey("entrant.id", ondelete="CASCADE"), nullable=False
    ),
    Column(
        "session_id", UUIDColumnType, ForeignKey("session.id", ondelete="CASCADE"), nullable=False
    ),
    Column("lap_number", Integer, nullable=False),
    Column("lap_time_ms", Integer, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
    Index("ix_lap_entrant_id_session_id", "entrant_id", "session_id"),
    Index("ix_lap_session_id", "session_id"),
)

# Job queue tables ------------------------------------------------------------

import_job_table = Table(
    "import_job",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("plan_hash", String(64), nullable=False),
    Column("mode", Enum(ImportMode, native_enum=False, length=16), nullable=False),
    Column("state", Enum(JobState, native_enum=False, length=16), nullable=False),
    Column("progress_pct", Integer, nullable=False, default=0),
    Column("message", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_import_job_state_created_at", "state", "created_at"),
)

import_job_item_table = Table(
    "import_job_item",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "job_id", UUIDColumnType, ForeignKey("import_job.id", ondelete="CASCADE"), nullable=False
    ),
    Column("position", Integer, nullable=False, default=0),
    Column("target_type", Enum(TargetType, native_enum=False, length=16), nullable=False),
    Column("target_ref", String, nullable=False),
    Column("state", Enum(JobState, native_enum=False, length=16), nullable=False),
    Column("counts", JSON, nullable=True),
    Column("message", String, nullable=True),
    Index("ix_import_job_item_job_id", "job_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Event, event_table)
    mapper_registry.map_imperatively(RaceClass, race_class_table)
    mapper_registry.map_imperatively(RaceSession, session_table)
    mapper_registry.map_imperatively(Entrant, entrant_table)
    mapper_registry.map_imperatively(Lap, lap_table)
    mapper_registry.map_imperatively(ImportJobItem, import_job_item_table)
    mapper_registry.map_imperatively(
        ImportJob,
        import_job_table,
        properties={
            "items": relationship(
                ImportJobItem,
                cascade="all, delete-orphan",
                lazy="selectin",
                order_by=import_job_item_table.c.position,
            ),
        },
    )

    configure_mappers()
    return mapper_registry
