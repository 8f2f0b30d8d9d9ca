"""Canonical racing entities produced by the importer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from datetime import datetime


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class Event:
    id: UUID = field(default_factory=new_id)
    source_event_id: str
    source_url: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class RaceClass:
    id: UUID = field(default_factory=new_id)
    event_id: UUID
    class_code: str
    source_url: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Session:
    id: UUID = field(default_factory=new_id)
    event_id: UUID
    race_class_id: UUID
    source_session_id: str
    source_url: str
    name: str
    scheduled_start: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Entrant:
    """A driver/car registration within one session."""

    id: UUID = field(default_factory=new_id)
    event_id: UUID
    race_class_id: UUID
    session_id: UUID
    display_name: str
    source_entrant_id: str | None = None
    car_number: str | None = None
    source_transponder_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Lap:
    """A single timed lap. ``id`` is content addressed, see ``build_lap_id``."""

    id: str
    entrant_id: UUID
    session_id: UUID
    lap_number: int
    lap_time_ms: int
    created_at: datetime | None = None
