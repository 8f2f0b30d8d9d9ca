from __future__ import annotations

from lapsync.domain.reconciliation import EntrantMatcher, GroupKey, SkipReason, group_laps
from tests.helpers.liverc import make_entry, make_lap


def test_group_laps_sorts_each_group_by_lap_number() -> None:
    grouping = group_laps(
        [make_lap("e1", 3, 30.0), make_lap("e1", 1, 31.0), make_lap("e2", 2, 32.0)],
        include_outlaps=False,
    )

    assert [lap.lap_number for lap in grouping.groups[GroupKey("e1")]] == [1, 3]
    assert [lap.lap_number for lap in grouping.groups[GroupKey("e2")]] == [2]
    assert not grouping.skipped


def test_outlaps_are_counted_before_lap_time_checks() -> None:
    grouping = group_laps(
        [
            make_lap("e1", 0, 0.0, is_outlap=True),
            make_lap("e1", 1, -1.0),
            make_lap("e1", 2, 30.0),
        ],
        include_outlaps=False,
    )

    assert grouping.skipped[SkipReason.EXCLUDED_OUTLAP] == 1
    assert grouping.skipped[SkipReason.NON_POSITIVE_LAP_TIME] == 1
    assert len(grouping.groups[GroupKey("e1")]) == 1


def test_included_outlaps_still_need_positive_times() -> None:
    grouping = group_laps(
        [make_lap("e1", 0, 45.0, is_outlap=True), make_lap("e1", 1, 0.0, is_outlap=True)],
        include_outlaps=True,
    )

    assert [lap.lap_number for lap in grouping.groups[GroupKey("e1")]] == [0]
    assert grouping.skipped[SkipReason.EXCLUDED_OUTLAP] == 0
    assert grouping.skipped[SkipReason.NON_POSITIVE_LAP_TIME] == 1


def test_laps_without_entry_id_group_by_normalised_name() -> None:
    grouping = group_laps(
        [
            make_lap(None, 1, 30.0, driver_name="  Alice   Racer "),
            make_lap(None, 2, 30.0, driver_name="Alice Racer"),
        ],
        include_outlaps=False,
    )

    key = GroupKey(entry_id=None, display_name="Alice Racer")
    assert list(grouping.groups) == [key]
    assert str(key) == "name:Alice Racer"


def test_matcher_prefers_source_id_and_falls_back_to_exact_name() -> None:
    matcher = EntrantMatcher(
        [make_entry("e1", "Alice Racer"), make_entry("e2", "Bob  Builder")]
    )

    assert matcher.match(GroupKey("e1")) is not None
    assert matcher.match(GroupKey("e9")) is None
    by_name = matcher.match(GroupKey(entry_id=None, display_name="Bob Builder"))
    assert by_name is not None
    assert by_name.entry_id == "e2"
    assert matcher.match(GroupKey(entry_id=None, display_name="bob builder")) is None
