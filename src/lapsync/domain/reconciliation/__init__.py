"""Import reconciliation: upstream race documents into canonical racing entities."""

from __future__ import annotations

from .engine import RaceContext, RaceImporter, entry_list_from_laps, lap_time_ms, title_from_slug
from .events import EventImportCounts, EventImporter
from .grouping import EntrantMatcher, GroupKey, group_laps, normalise_display_name
from .lap_ids import build_lap_id, upstream_session_id
from .summary import ImportSummary, SkipReason

__all__ = [
    "EntrantMatcher",
    "EventImportCounts",
    "EventImporter",
    "GroupKey",
    "ImportSummary",
    "RaceContext",
    "RaceImporter",
    "SkipReason",
    "build_lap_id",
    "entry_list_from_laps",
    "group_laps",
    "lap_time_ms",
    "normalise_display_name",
    "title_from_slug",
    "upstream_session_id",
]
