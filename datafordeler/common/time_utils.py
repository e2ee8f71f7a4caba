"""Date helpers for run metadata and registry validity stamps."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def local_today() -> date:
    return date.today()


def parse_registry_date(value: str | None) -> date | None:
    """Return the date part of a registry timestamp, or None if it does not parse.

    Registry stamps look like ``2017-05-03T12:00:00.000000+02:00``. The date is
    taken as written, without converting the offset to local time.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    # Older interpreters reject 7-digit fractions; the date prefix is enough.
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
