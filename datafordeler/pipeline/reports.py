"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from datafordeler.common.fs import write_json


def summary_path(data_dir: Path) -> Path:
    return data_dir / "out" / "reports" / "run_summary.json"


def write_run_summary(
    data_dir: Path,
    run_id: str,
    run_date: str,
    *,
    stages: list[str],
    exports: list[dict] | None = None,
    lookup_sizes: dict[str, int] | None = None,
    warnings: list[str] | None = None,
    error: dict | None = None,
) -> Path:
    exports = exports or []
    warnings = warnings or []

    status = "success"
    if error is not None:
        status = "error"
    elif warnings:
        status = "partial"

    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": status,
        "stages": stages,
        "totals": {"rows": sum(int(export.get("rows", 0)) for export in exports)},
        "exports": exports,
        "lookup_sizes": lookup_sizes or {},
        "warning_count": len(warnings),
        "warnings": warnings,
        "error": error,
    }
    path = summary_path(data_dir)
    write_json(path, payload)
    return path
