"""Lap-volume heuristics for sessions that publish no lap totals.

Estimates come from the class name and the session type: mains run longer and
carry more drivers than heats, stock and touring classes lap faster than
truggies, novice fields are smaller. Per class, the driver total is taken from
the heat groups when there are any (every driver runs a heat), else from the
ungrouped sessions, else from the mains.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from lapsync.domain.model import SessionType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lapsync.domain.ports.upstream import SessionSummary

_HEAT_WORD = re.compile(r"\bheat\b", re.IGNORECASE)
_HEAT_LABEL = re.compile(r"(heat\s*[a-z0-9]+)")
_MAIN_WORD = re.compile(r"\bmain\b", re.IGNORECASE)
_LOWER_MAIN = re.compile(r"\b[b-z]\s*main\b", re.IGNORECASE)
_LETTER_BEFORE_MAIN = re.compile(r"([a-z])\s*main")
_LETTER_AFTER_MAIN = re.compile(r"main\s*([a-z])")
_SPACES = re.compile(r"\s+")

MAIN_DURATION_SECONDS = 20 * 60
LOWER_MAIN_DURATION_SECONDS = 15 * 60
SESSION_DURATION_SECONDS = 6 * 60


class GroupType(StrEnum):
    HEAT = "heat"
    MAIN = "main"
    DEFAULT = "default"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def class_key(class_name: str) -> str:
    return class_name.strip().lower()


def normalise_group(heat_label: str | None, session_type: SessionType) -> tuple[str, GroupType]:
    if not heat_label:
        return "default", GroupType.DEFAULT

    label = heat_label.strip().lower()
    if _HEAT_WORD.search(label):
        match = _HEAT_LABEL.search(label)
        return (match.group(1) if match else label), GroupType.HEAT

    if _MAIN_WORD.search(label):
        match = _LETTER_BEFORE_MAIN.search(label) or _LETTER_AFTER_MAIN.search(label)
        group = f"main-{match.group(1)}" if match else _SPACES.sub("-", label)
        return group, GroupType.MAIN if session_type == SessionType.MAIN else GroupType.DEFAULT

    return _SPACES.sub("-", label), GroupType.DEFAULT


def _is_lower_main(session: SessionSummary) -> bool:
    return bool(session.heat_label and _LOWER_MAIN.search(session.heat_label))


def estimate_drivers_per_session(session: SessionSummary) -> int:
    key = class_key(session.class_name)
    base = 12 if session.session_type == SessionType.MAIN else 10

    if session.heat_label and _HEAT_WORD.search(session.heat_label):
        base = max(base, 10)
    if session.session_type == SessionType.MAIN and _is_lower_main(session):
        base = max(10, base - 1)
    if "truggy" in key:
        base = max(9, base - 1)
    if "novice" in key or "beginner" in key:
        base = max(6, base - 2)
    if "pro" in key or "open" in key:
        base += 1
    return max(6, base)


def estimate_session_duration_seconds(session: SessionSummary) -> int:
    if session.session_type == SessionType.MAIN:
        return LOWER_MAIN_DURATION_SECONDS if _is_lower_main(session) else MAIN_DURATION_SECONDS
    return SESSION_DURATION_SECONDS


def estimate_baseline_lap_seconds(session: SessionSummary) -> int:
    key = class_key(session.class_name)
    baseline = 34
    if "buggy" in key:
        baseline = 32
    if "truggy" in key:
        baseline = 36
    if "short course" in key or "sct" in key:
        baseline = 40
    if "oval" in key:
        baseline = 28
    if "touring" in key or "on-road" in key or "onroad" in key:
        baseline = 27
    if "stock" in key or "17.5" in key or "13.5" in key:
        baseline = max(26, baseline - 2)
    if "nitro" in key:
        baseline = max(baseline, 35)
    return max(20, baseline)


def estimate_laps_per_driver(session: SessionSummary) -> int:
    duration = estimate_session_duration_seconds(session)
    return max(1, round_half_up(duration / estimate_baseline_lap_seconds(session)))


@dataclass(frozen=True, slots=True)
class SessionEstimate:
    class_key: str
    group_label: str
    group_type: GroupType
    driver_estimate: int
    laps_per_driver: int


@dataclass(frozen=True, slots=True)
class HeuristicSummary:
    sessions: tuple[SessionEstimate, ...] = field(default_factory=tuple)
    driver_total: int = 0


def estimate_session(session: SessionSummary) -> SessionEstimate:
    """Estimate one session; a driver count published upstream wins over the guess."""

    label, group_type = normalise_group(session.heat_label, session.session_type)
    drivers = session.driver_count or estimate_drivers_per_session(session)
    return SessionEstimate(
        class_key=class_key(session.class_name),
        group_label=label,
        group_type=group_type,
        driver_estimate=drivers,
        laps_per_driver=estimate_laps_per_driver(session),
    )


def build_heuristic_summary(sessions: Iterable[SessionSummary]) -> HeuristicSummary:
    estimates = tuple(estimate_session(session) for session in sessions)

    # class -> group type -> group label -> largest driver estimate
    groups: dict[str, dict[GroupType, dict[str, int]]] = {}
    for estimate in estimates:
        per_type = groups.setdefault(estimate.class_key, {kind: {} for kind in GroupType})
        labels = per_type[estimate.group_type]
        labels[estimate.group_label] = max(
            labels.get(estimate.group_label, 0), estimate.driver_estimate
        )

    driver_total = 0
    for per_type in groups.values():
        heat_total = sum(per_type[GroupType.HEAT].values())
        default_total = sum(per_type[GroupType.DEFAULT].values())
        main_total = sum(per_type[GroupType.MAIN].values())
        driver_total += heat_total or default_total or main_total

    return HeuristicSummary(sessions=estimates, driver_total=driver_total)


def scaled_totals(summary: HeuristicSummary, driver_floor: int) -> tuple[int, int]:
    """Return ``(drivers, laps)`` with every session scaled up to ``driver_floor`` drivers."""

    target = max(summary.driver_total, driver_floor)
    if summary.driver_total == 0:
        return max(0, target), 0

    scale = target / summary.driver_total
    laps = sum(
        estimate.driver_estimate * scale * estimate.laps_per_driver
        for estimate in summary.sessions
    )
    return max(0, target), max(0, round_half_up(laps))
