"""Parse LiveRC results links into structured references.

A race reference looks like::

    https://<club>.liverc.com/results/<event>/<class>/<round>/<race>.json

The provider's browsable page (``?p=view_race_result&id=<n>``) is recognised as a
legacy link that has to be resolved out-of-band before it can be imported.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Final
from urllib.parse import parse_qs, unquote, urlsplit

from lapsync.domain.errors import InvalidReference

RESULTS_SEGMENT: Final[str] = "results"
_JSON_SUFFIX = re.compile(r"\.json$", re.IGNORECASE)


class RejectionReason(StrEnum):
    INVALID_ABSOLUTE_URL = "LiveRC import requires an absolute URL."
    INVALID_RESULTS_PATH = "LiveRC URL must point to a JSON results endpoint under /results/."
    INCOMPLETE_RESULTS_SEGMENTS = (
        "LiveRC results URL must include event, class, round, and race segments."
    )
    EXTRA_SEGMENTS = "LiveRC results URL must not include extra path segments after the race slug."
    EMPTY_SEGMENT = "LiveRC results URL must not include empty path segments."
    EMPTY_SLUG = "LiveRC results URL contains a segment that resolves to an empty slug."

    @property
    def error_code(self) -> str:
        return _ERROR_CODES[self]


_ERROR_CODES: Final[dict[RejectionReason, str]] = {
    RejectionReason.INVALID_ABSOLUTE_URL: "INVALID_URL",
    RejectionReason.INVALID_RESULTS_PATH: "UNSUPPORTED_URL",
    RejectionReason.INCOMPLETE_RESULTS_SEGMENTS: "INCOMPLETE_URL",
    RejectionReason.EXTRA_SEGMENTS: "INVALID_URL",
    RejectionReason.EMPTY_SEGMENT: "INVALID_URL",
    RejectionReason.EMPTY_SLUG: "INVALID_URL",
}


@dataclass(frozen=True, slots=True)
class ParsedReference:
    event_slug: str
    class_slug: str
    round_slug: str
    race_slug: str
    canonical_path: str
    origin: str
    results_base_url: str


@dataclass(frozen=True, slots=True)
class LegacyReference:
    url: str


@dataclass(frozen=True, slots=True)
class RejectedReference:
    url: str
    reason: RejectionReason


type Reference = ParsedReference | LegacyReference | RejectedReference


@dataclass(frozen=True, slots=True)
class EventReference:
    """An event-level reference used by plans and event job items."""

    event_slug: str
    results_base_url: str | None = None


def _split(url: str) -> tuple[str, list[str], dict[str, list[str]]] | None:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in {"http", "https"} or not parts.netloc:
        return None
    origin = f"{parts.scheme.lower()}://{parts.netloc.lower()}"
    segments = [segment for segment in parts.path.split("/") if segment]
    return origin, segments, parse_qs(parts.query)


def _is_legacy_page(query: dict[str, list[str]]) -> bool:
    page = next(iter(query.get("p", [])), "")
    if page.lower() != "view_race_result":
        return False
    return any(value.strip() for value in query.get("id", []))


def _results_index(segments: list[str]) -> int | None:
    for index, segment in enumerate(segments):
        if segment.lower() == RESULTS_SEGMENT:
            return index
    return None


def _normalise_segment(segment: str, *, is_race: bool) -> str | RejectionReason:
    trimmed = unquote(segment).strip()
    if not trimmed:
        return RejectionReason.EMPTY_SEGMENT
    if is_race:
        trimmed = _JSON_SUFFIX.sub("", trimmed).strip()
        if not trimmed:
            return RejectionReason.EMPTY_SLUG
    return trimmed


def parse_reference(url: str) -> Reference:
    """Classify ``url`` as a parsed race reference, a legacy page, or a rejection."""

    split = _split(url)
    if split is None:
        return RejectedReference(url=url, reason=RejectionReason.INVALID_ABSOLUTE_URL)
    origin, segments, query = split

    if _is_legacy_page(query):
        return LegacyReference(url=url)

    results_index = _results_index(segments)
    if results_index is None:
        return RejectedReference(url=url, reason=RejectionReason.INVALID_RESULTS_PATH)

    after_results = segments[results_index + 1 :]
    if len(after_results) < 4:
        return RejectedReference(url=url, reason=RejectionReason.INCOMPLETE_RESULTS_SEGMENTS)
    if len(after_results) > 4:
        return RejectedReference(url=url, reason=RejectionReason.EXTRA_SEGMENTS)

    slugs: list[str] = []
    for index, segment in enumerate(after_results):
        normalised = _normalise_segment(segment, is_race=index == 3)
        if isinstance(normalised, RejectionReason):
            return RejectedReference(url=url, reason=normalised)
        slugs.append(normalised)

    base_segments = segments[: results_index + 1]
    event_slug, class_slug, round_slug, race_slug = slugs
    canonical = [*base_segments, event_slug, class_slug, round_slug, f"{race_slug}.json"]
    return ParsedReference(
        event_slug=event_slug,
        class_slug=class_slug,
        round_slug=round_slug,
        race_slug=race_slug,
        canonical_path="/" + "/".join(canonical),
        origin=origin,
        results_base_url=f"{origin}/{'/'.join(base_segments)}",
    )


def require_race_reference(url: str) -> ParsedReference:
    """Return the parsed reference or raise ``InvalidReference`` with a stable code."""

    reference = parse_reference(url)
    match reference:
        case ParsedReference():
            return reference
        case LegacyReference():
            raise InvalidReference(
                "LiveRC HTML results URLs are not supported. Please use the JSON results link.",
                code="UNSUPPORTED_URL",
                details={"url": url, "detectedType": "html"},
            )
        case RejectedReference(reason=reason):
            raise InvalidReference(
                str(reason),
                code=reason.error_code,
                details={"url": url, "reason": reason.name},
            )


def parse_event_reference(ref: str) -> EventReference:
    """Accept a bare event slug or a results URL pointing at (or below) an event."""

    candidate = ref.strip()
    if not candidate:
        raise InvalidReference("Event reference must not be empty", details={"eventRef": ref})

    split = _split(candidate)
    if split is None:
        if "/" in candidate or "?" in candidate:
            raise InvalidReference(
                "Event reference must be an event slug or a LiveRC results URL",
                details={"eventRef": ref},
            )
        return EventReference(event_slug=candidate)

    origin, segments, _query = split
    results_index = _results_index(segments)
    if results_index is None or len(segments) <= results_index + 1:
        raise InvalidReference(
            "Event URL must include an event segment under /results/",
            code="UNSUPPORTED_URL" if results_index is None else "INCOMPLETE_URL",
            details={"eventRef": ref},
        )

    event_slug = unquote(segments[results_index + 1]).strip()
    if not event_slug:
        raise InvalidReference("Event slug must not be empty", details={"eventRef": ref})
    base_segments = segments[: results_index + 1]
    return EventReference(
        event_slug=event_slug,
        results_base_url=f"{origin}/{'/'.join(base_segments)}",
    )
