"""Reconcile one LiveRC race into canonical events, classes, sessions, entrants and laps.

The importer fetches the entry list and the race result concurrently, then runs a
single-threaded reconciliation pass inside one unit of work:

1. upsert event, race class and session by their source identifiers;
2. group laps per entrant, excluding outlaps and non-positive lap times;
3. match each group against the entry list and merge groups resolving to the same row
   (unknown groups are counted and dropped, withdrawn entrants are skipped silently);
4. replace each entrant's full lap set for the session with content-addressed laps;
5. clear laps of stored entrants that no longer have an importable group.

Fetch failures abort before anything is written.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from lapsync.domain.errors import InvalidPayload
from lapsync.domain.model import Lap
from lapsync.domain.ports.persistence import (
    EntrantUpsert,
    EventUpsert,
    RaceClassUpsert,
    SessionUpsert,
)
from lapsync.domain.ports.upstream import EntryList, EntryListEntry
from lapsync.domain.references import require_race_reference

from .grouping import (
    EntrantMatcher,
    group_laps,
    normalise_display_name,
    normalise_whitespace,
)
from .lap_ids import build_lap_id, upstream_session_id
from .summary import ImportSummary, SkipReason

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from uuid import UUID

    from lapsync.domain.model import Entrant, Event, RaceClass, Session
    from lapsync.domain.ports.unit_of_work import RaceRepositories, RaceUnitOfWork
    from lapsync.domain.ports.upstream import RaceLap, RaceResult, UpstreamClient
    from lapsync.domain.references import ParsedReference

log = getLogger(__name__)

UPLOADED_SCHEME = "uploaded-file://"


def title_from_slug(slug: str) -> str:
    words = normalise_whitespace(slug.replace("-", " ").replace("_", " ")).split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


def lap_time_ms(seconds: float) -> int:
    """Milliseconds rounded half-up."""

    return math.floor(seconds * 1000 + 0.5)


@dataclass(frozen=True, slots=True)
class RaceContext:
    """Slugs and URLs that locate one race, whether fetched or uploaded."""

    event_slug: str
    class_slug: str
    round_slug: str
    race_slug: str
    event_url: str
    class_url: str

    @classmethod
    def from_reference(cls, reference: ParsedReference) -> RaceContext:
        base = reference.results_base_url.rstrip("/")
        event_url = f"{base}/{quote(reference.event_slug, safe='')}"
        return cls(
            event_slug=reference.event_slug,
            class_slug=reference.class_slug,
            round_slug=reference.round_slug,
            race_slug=reference.race_slug,
            event_url=event_url,
            class_url=f"{event_url}/{quote(reference.class_slug, safe='')}",
        )

    @classmethod
    def for_upload(cls, result: RaceResult) -> RaceContext:
        event_slug = result.event_id or "upload"
        class_slug = result.class_id or "upload"
        event_url = f"{UPLOADED_SCHEME}{quote(event_slug, safe='')}"
        return cls(
            event_slug=event_slug,
            class_slug=class_slug,
            round_slug=result.round_id or "upload",
            race_slug=result.race_id or "upload",
            event_url=event_url,
            class_url=f"{event_url}/{quote(class_slug, safe='')}",
        )

    @property
    def upload_url(self) -> str:
        segments = (self.event_slug, self.class_slug, self.round_slug, self.race_slug)
        return UPLOADED_SCHEME + "/".join(quote(segment, safe="") for segment in segments)


@dataclass(slots=True)
class _Counters:
    entrants_processed: int = 0
    laps_imported: int = 0
    skipped_lap_count: int = 0
    skipped_entrant_count: int = 0
    skipped_outlap_count: int = 0


@dataclass(slots=True)
class RaceImporter:
    """Import a single race from LiveRC (or from an uploaded race-result document)."""

    upstream: UpstreamClient
    unit_of_work_factory: Callable[[], RaceUnitOfWork]

    def import_from_url(self, url: str, *, include_outlaps: bool = False) -> ImportSummary:
        reference = require_race_reference(url)
        return self.import_reference(reference, source_url=url, include_outlaps=include_outlaps)

    def import_reference(
        self,
        reference: ParsedReference,
        *,
        source_url: str | None = None,
        include_outlaps: bool = False,
    ) -> ImportSummary:
        entry_list, race_result = asyncio.run(self._fetch(reference))
        return self.reconcile(
            entry_list,
            race_result,
            context=RaceContext.from_reference(reference),
            source_url=source_url or f"{reference.origin}{reference.canonical_path}",
            include_outlaps=include_outlaps,
        )

    def import_from_payload(
        self,
        payload: Mapping[str, Any],
        *,
        include_outlaps: bool = False,
    ) -> ImportSummary:
        """Import an uploaded race-result document; the entry list is derived from its laps."""

        race_result = self.upstream.parse_race_result(payload)
        missing = [
            name
            for name, value in (
                ("eventId", race_result.event_id),
                ("classId", race_result.class_id),
                ("raceId", race_result.race_id),
            )
            if not value
        ]
        if missing or not race_result.has_lap_data:
            raise InvalidPayload(
                "LiveRC race result payload is missing required fields.",
                details={"missingIdentifiers": missing, "hasLapData": race_result.has_lap_data},
            )

        context = RaceContext.for_upload(race_result)
        return self.reconcile(
            entry_list_from_laps(race_result),
            race_result,
            context=context,
            source_url=context.upload_url,
            include_outlaps=include_outlaps,
        )

    async def _fetch(self, reference: ParsedReference) -> tuple[EntryList, RaceResult]:
        return await asyncio.gather(
            self.upstream.fetch_entry_list(reference),
            self.upstream.fetch_race_result(reference),
        )

    def reconcile(
        self,
        entry_list: EntryList,
        race_result: RaceResult,
        *,
        context: RaceContext,
        source_url: str,
        include_outlaps: bool,
    ) -> ImportSummary:
        counters = _Counters()
        grouping = group_laps(race_result.laps, include_outlaps=include_outlaps)
        counters.skipped_outlap_count = grouping.skipped[SkipReason.EXCLUDED_OUTLAP]
        counters.skipped_lap_count = grouping.skipped[SkipReason.NON_POSITIVE_LAP_TIME]
        matcher = EntrantMatcher(entry_list.entries)

        upstream_event_id = race_result.event_id or entry_list.event_id or context.event_slug
        upstream_race_id = race_result.race_id or context.race_slug
        session_key = upstream_session_id(
            race_result.event_id or context.event_slug,
            race_result.class_id or race_result.class_code or context.class_slug,
            race_result.round_id or context.round_slug,
            upstream_race_id,
            fallback=source_url,
        )

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            event = self._persist_event(repositories, entry_list, race_result, context)
            race_class = self._persist_race_class(
                repositories, event, entry_list, race_result, context
            )
            session = repositories.sessions.upsert_by_source(
                SessionUpsert(
                    event_id=event.id,
                    race_class_id=race_class.id,
                    source_session_id=session_key,
                    source_url=source_url,
                    name=normalise_whitespace(
                        race_result.race_name or title_from_slug(context.race_slug)
                    ),
                    scheduled_start=race_result.start_time_utc,
                )
            )

            resolved: dict[str, tuple[EntryListEntry, list[RaceLap]]] = {}
            for key, laps in grouping.groups.items():
                entry = matcher.match(key)
                if entry is None:
                    counters.skipped_entrant_count += 1
                    counters.skipped_lap_count += len(laps)
                    log.warning(
                        "Skipping %s laps for %s: no matching entry list row (%s)",
                        len(laps),
                        key,
                        SkipReason.UNKNOWN_ENTRANT,
                    )
                    continue
                if entry.withdrawn:
                    log.debug(
                        "Skipping %s laps for %s (%s)",
                        len(laps),
                        entry.entry_id,
                        SkipReason.WITHDRAWN_ENTRANT,
                    )
                    continue
                # id-keyed and name-keyed groups can resolve to the same row
                resolved.setdefault(entry.entry_id, (entry, []))[1].extend(laps)

            imported_entrants: set[UUID] = set()
            for entry, laps in resolved.values():
                entrant = self._persist_entrant(repositories, event, race_class, session, entry)
                records, rejected = self._lap_records(
                    laps,
                    entrant=entrant,
                    session=session,
                    event_id=upstream_event_id,
                    session_key=session_key,
                    race_id=upstream_race_id,
                    entrant_source_id=entry.entry_id,
                )
                counters.skipped_lap_count += rejected
                repositories.laps.replace_for_entrant(entrant.id, session.id, records)
                imported_entrants.add(entrant.id)
                if records:
                    counters.entrants_processed += 1
                    counters.laps_imported += len(records)

            self._clear_stale_entrants(repositories, session, imported_entrants)
            uow.commit()

        summary = ImportSummary(
            event_id=event.id,
            event_name=event.name,
            race_class_id=race_class.id,
            race_class_name=race_class.name,
            session_id=session.id,
            session_name=session.name,
            race_id=upstream_race_id,
            round_id=race_result.round_id or context.round_slug,
            entrants_processed=counters.entrants_processed,
            laps_imported=counters.laps_imported,
            skipped_lap_count=counters.skipped_lap_count,
            skipped_entrant_count=counters.skipped_entrant_count,
            skipped_outlap_count=counters.skipped_outlap_count,
            source_url=source_url,
            include_outlaps=include_outlaps,
        )
        log.info(
            "Imported %s: entrants=%s laps=%s skipped_laps=%s skipped_entrants=%s outlaps=%s",
            source_url,
            summary.entrants_processed,
            summary.laps_imported,
            summary.skipped_lap_count,
            summary.skipped_entrant_count,
            summary.skipped_outlap_count,
        )
        return summary

    @staticmethod
    def _persist_event(
        repositories: RaceRepositories,
        entry_list: EntryList,
        race_result: RaceResult,
        context: RaceContext,
    ) -> Event:
        name = race_result.event_name or entry_list.event_name or title_from_slug(
            context.event_slug
        )
        return repositories.events.upsert_by_source(
            EventUpsert(
                source_event_id=race_result.event_id or entry_list.event_id or context.event_slug,
                source_url=context.event_url,
                name=normalise_whitespace(name) or title_from_slug(context.event_slug),
            )
        )

    @staticmethod
    def _persist_race_class(
        repositories: RaceRepositories,
        event: Event,
        entry_list: EntryList,
        race_result: RaceResult,
        context: RaceContext,
    ) -> RaceClass:
        code = entry_list.class_code or race_result.class_code or context.class_slug
        name = race_result.class_name or entry_list.class_name or title_from_slug(
            context.class_slug
        )
        return repositories.race_classes.upsert_by_source(
            RaceClassUpsert(
                event_id=event.id,
                class_code=normalise_whitespace(code.upper()),
                source_url=context.class_url,
                name=normalise_whitespace(name),
            )
        )

    @staticmethod
    def _persist_entrant(
        repositories: RaceRepositories,
        event: Event,
        race_class: RaceClass,
        session: Session,
        entry: EntryListEntry,
    ) -> Entrant:
        return repositories.entrants.upsert_by_source(
            EntrantUpsert(
                event_id=event.id,
                race_class_id=race_class.id,
                session_id=session.id,
                display_name=normalise_display_name(entry.display_name),
                source_entrant_id=entry.entry_id,
                car_number=entry.car_number,
                source_transponder_id=entry.transponder_id,
            )
        )

    @staticmethod
    def _lap_records(
        laps: Sequence[RaceLap],
        *,
        entrant: Entrant,
        session: Session,
        event_id: str,
        session_key: str,
        race_id: str,
        entrant_source_id: str,
    ) -> tuple[list[Lap], int]:
        records: dict[str, Lap] = {}
        rejected = 0
        for lap in laps:
            milliseconds = lap_time_ms(lap.lap_time_seconds)
            if milliseconds <= 0:
                rejected += 1
                continue
            lap_id = build_lap_id(
                event_id=event_id,
                session_id=session_key,
                race_id=race_id,
                entrant_source_id=entrant_source_id,
                lap_number=lap.lap_number,
            )
            # repeated lap numbers collapse onto one id; the last occurrence wins
            records[lap_id] = Lap(
                id=lap_id,
                entrant_id=entrant.id,
                session_id=session.id,
                lap_number=lap.lap_number,
                lap_time_ms=milliseconds,
            )
        return sorted(records.values(), key=lambda record: record.lap_number), rejected

    @staticmethod
    def _clear_stale_entrants(
        repositories: RaceRepositories,
        session: Session,
        imported_entrants: set[UUID],
    ) -> None:
        for entrant in repositories.entrants.list_for_session(session.id):
            if entrant.id not in imported_entrants:
                repositories.laps.replace_for_entrant(entrant.id, session.id, [])


def entry_list_from_laps(race_result: RaceResult) -> EntryList:
    """Derive an entry list from the laps of an uploaded result (one row per entrant)."""

    entries: dict[str, EntryListEntry] = {}
    for lap in race_result.laps:
        entry_id = lap.entry_id or f"name:{normalise_display_name(lap.driver_name)}"
        if entry_id not in entries:
            entries[entry_id] = EntryListEntry(entry_id=entry_id, display_name=lap.driver_name)
    return EntryList(
        event_id=race_result.event_id,
        event_name=race_result.event_name,
        class_id=race_result.class_id,
        class_name=race_result.class_name,
        class_code=race_result.class_code,
        entries=tuple(entries.values()),
    )
