"""Group race-result laps per entrant and match groups against the entry list."""

from __future__ import annotations

import re
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .summary import SkipReason

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lapsync.domain.ports.upstream import EntryListEntry, RaceLap

_WHITESPACE = re.compile(r"\s+")


def normalise_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def normalise_display_name(value: str) -> str:
    return normalise_whitespace(unicodedata.normalize("NFC", value))


@dataclass(frozen=True, slots=True)
class GroupKey:
    """Entrant key of a lap group: the source id, or the display name when there is none."""

    entry_id: str | None
    display_name: str | None = None

    @classmethod
    def for_lap(cls, lap: RaceLap) -> GroupKey:
        if lap.entry_id:
            return cls(entry_id=lap.entry_id)
        return cls(entry_id=None, display_name=normalise_display_name(lap.driver_name))

    def __str__(self) -> str:
        return self.entry_id or f"name:{self.display_name}"


@dataclass(slots=True)
class LapGrouping:
    groups: dict[GroupKey, list[RaceLap]] = field(default_factory=dict)
    skipped: Counter[SkipReason] = field(default_factory=Counter)


def group_laps(laps: Iterable[RaceLap], *, include_outlaps: bool) -> LapGrouping:
    """Group ``laps`` by entrant, excluding outlaps and non-positive lap times.

    Outlaps are checked first so an outlap with a zero time counts as an outlap only.
    Each group is sorted by lap number.
    """

    grouping = LapGrouping()
    for lap in laps:
        if lap.is_outlap and not include_outlaps:
            grouping.skipped[SkipReason.EXCLUDED_OUTLAP] += 1
            continue
        if lap.lap_time_seconds <= 0:
            grouping.skipped[SkipReason.NON_POSITIVE_LAP_TIME] += 1
            continue
        grouping.groups.setdefault(GroupKey.for_lap(lap), []).append(lap)

    for group in grouping.groups.values():
        group.sort(key=lambda lap: lap.lap_number)
    return grouping


class EntrantMatcher:
    """Resolve lap groups to entry-list rows by source id, else by exact display name."""

    def __init__(self, entries: Iterable[EntryListEntry]) -> None:
        self._by_id: dict[str, EntryListEntry] = {}
        self._by_name: dict[str, EntryListEntry] = {}
        for entry in entries:
            self._by_id.setdefault(entry.entry_id, entry)
            self._by_name.setdefault(normalise_display_name(entry.display_name), entry)

    def match(self, key: GroupKey) -> EntryListEntry | None:
        if key.entry_id is not None:
            return self._by_id.get(key.entry_id)
        if key.display_name is not None:
            return self._by_name.get(key.display_name)
        return None
