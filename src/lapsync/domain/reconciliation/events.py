"""Event-level import: every session listed in the event overview."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from lapsync.domain.references import parse_event_reference

if TYPE_CHECKING:
    from lapsync.domain.ports.upstream import UpstreamClient

    from .engine import RaceImporter
    from .summary import ImportSummary

log = getLogger(__name__)


@dataclass(slots=True)
class EventImportCounts:
    sessions_imported: int = 0
    entrants_processed: int = 0
    laps_imported: int = 0
    skipped_lap_count: int = 0
    skipped_entrant_count: int = 0
    skipped_outlap_count: int = 0

    def add(self, summary: ImportSummary) -> None:
        self.sessions_imported += 1
        self.entrants_processed += summary.entrants_processed
        self.laps_imported += summary.laps_imported
        self.skipped_lap_count += summary.skipped_lap_count
        self.skipped_entrant_count += summary.skipped_entrant_count
        self.skipped_outlap_count += summary.skipped_outlap_count

    def as_payload(self) -> dict[str, int]:
        return {
            "sessionsImported": self.sessions_imported,
            "entrantsProcessed": self.entrants_processed,
            "lapsImported": self.laps_imported,
            "skippedLapCount": self.skipped_lap_count,
            "skippedEntrantCount": self.skipped_entrant_count,
            "skippedOutlapCount": self.skipped_outlap_count,
        }


@dataclass(slots=True)
class EventImporter:
    """Import all sessions of one event, one unit of work per session.

    A failing session aborts the event; sessions imported before it stay committed
    and converge on the next attempt.
    """

    upstream: UpstreamClient
    race_importer: RaceImporter
    include_outlaps: bool = False

    def import_event(self, event_ref: str) -> EventImportCounts:
        event = parse_event_reference(event_ref)
        overview = asyncio.run(self.upstream.fetch_event_overview(event))
        counts = EventImportCounts()
        log.info("Importing %s sessions for event %s", len(overview.sessions), event.event_slug)
        for session in overview.sessions:
            reference = self.upstream.race_reference(event, session)
            summary = self.race_importer.import_reference(
                reference, include_outlaps=self.include_outlaps
            )
            counts.add(summary)
        return counts
