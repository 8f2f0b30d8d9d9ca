"""Content-addressed identifiers for laps.

A lap id is the lowercase hex SHA-256 digest of the UTF-8 string::

    "{event_id}|{session_id}|{race_id}|{entrant_source_id}|{lap_number}"

where every component is the *upstream* identifier (never an internal UUID), and
``session_id`` is ``upstream_session_id``'s colon-joined tuple. Identical upstream
payloads therefore always map onto the same stored rows.
"""

from __future__ import annotations

import hashlib


def upstream_session_id(*segments: str | None, fallback: str) -> str:
    """Join the non-empty segments with ``:``; use ``fallback`` if none remain."""

    joined = ":".join(segment for segment in segments if segment)
    return joined or fallback


def build_lap_id(
    *,
    event_id: str,
    session_id: str,
    race_id: str,
    entrant_source_id: str,
    lap_number: int,
) -> str:
    material = f"{event_id}|{session_id}|{race_id}|{entrant_source_id}|{lap_number}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
