"""Geometry helpers."""

from __future__ import annotations

import re

_POINT_RE = re.compile(r"POINT\((\S+) (\S+)\)", re.IGNORECASE)
_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def parse_point(raw: str | None) -> tuple[str | None, str | None]:
    """Split ``POINT(<easting> <northing>)`` into its two coordinate strings.

    The coordinates are returned verbatim so no precision is lost. Anything else
    (MULTIPOINT, missing parts, non-numeric text) gives ``(None, None)``.
    """
    if not raw:
        return None, None
    match = _POINT_RE.fullmatch(raw)
    if match is None:
        return None, None
    easting, northing = match.group(1), match.group(2)
    if not _NUMBER_RE.fullmatch(easting) or not _NUMBER_RE.fullmatch(northing):
        return None, None
    return easting, northing
