"""Run identifier helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def generate_run_id(now: datetime | None = None) -> str:
    """Sortable run id, ``run-<UTC timestamp to the microsecond>Z``."""
    now = now or datetime.now(tz=timezone.utc)
    return now.astimezone(timezone.utc).strftime("run-%Y%m%dT%H%M%S%fZ")
