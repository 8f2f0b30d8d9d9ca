"""Import summary and soft-skip reasons."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID


class SkipReason(StrEnum):
    """Soft anomalies counted during reconciliation. Never raised."""

    UNKNOWN_ENTRANT = "unknown_entrant"
    WITHDRAWN_ENTRANT = "withdrawn_entrant"
    NON_POSITIVE_LAP_TIME = "non_positive_lap_time"
    EXCLUDED_OUTLAP = "excluded_outlap"


@dataclass(frozen=True, slots=True)
class ImportSummary:
    event_id: UUID
    event_name: str
    race_class_id: UUID
    race_class_name: str
    session_id: UUID
    session_name: str
    race_id: str
    round_id: str
    entrants_processed: int
    laps_imported: int
    skipped_lap_count: int
    skipped_entrant_count: int
    skipped_outlap_count: int
    source_url: str
    include_outlaps: bool

    def as_payload(self) -> dict[str, Any]:
        return {
            "eventId": str(self.event_id),
            "eventName": self.event_name,
            "raceClassId": str(self.race_class_id),
            "raceClassName": self.race_class_name,
            "sessionId": str(self.session_id),
            "sessionName": self.session_name,
            "raceId": self.race_id,
            "roundId": self.round_id,
            "entrantsProcessed": self.entrants_processed,
            "lapsImported": self.laps_imported,
            "skippedLapCount": self.skipped_lap_count,
            "skippedEntrantCount": self.skipped_entrant_count,
            "skippedOutlapCount": self.skipped_outlap_count,
            "sourceUrl": self.source_url,
            "includeOutlaps": self.include_outlaps,
        }
