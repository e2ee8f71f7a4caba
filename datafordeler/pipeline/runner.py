"""Export orchestration: build lookups once, then run the exporters concurrently."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Mapping

from datafordeler.common.constants import DAR_SOURCE, MAT_SOURCE
from datafordeler.common.errors import PipelineError, StageError
from datafordeler.common.logging import log_event
from datafordeler.common.progress import ProgressObserver, logging_observer
from datafordeler.common.time_utils import local_today
from datafordeler.pipeline.export import (
    ExportContext,
    ExportResult,
    export_address_access,
    export_address_specific,
    export_post_codes,
    export_road_names,
    missing_list_warning,
)
from datafordeler.pipeline.lookups import (
    LOOKUP_RUNNERS,
    AddressPositionBuilder,
    CadastralParcelBuilder,
    LookupTable,
    Lookups,
    OwnershipDistrictBuilder,
    PostalCodeBuilder,
    RoadMunicipalityBuilder,
)
from datafordeler.pipeline.validate import verify_output
from datafordeler.storage.sinks import DirectorySink
from datafordeler.storage.sources import SourceDocument, resolve_source

Exporter = Callable[[ExportContext, Lookups], ExportResult]

POSTAL_CODES = "postal_codes"
ROADS = "roads"
PARCELS = "parcels"
POSITIONS = "positions"

EXPORTERS: dict[str, tuple[Exporter, frozenset[str]]] = {
    "road-name": (export_road_names, frozenset({ROADS})),
    "post-code": (export_post_codes, frozenset({POSTAL_CODES})),
    "address-access": (export_address_access, frozenset({POSTAL_CODES, ROADS, PARCELS, POSITIONS})),
    "address-specific": (export_address_specific, frozenset()),
}


@dataclass
class RunResult:
    stages: list[str]
    lookup_sizes: dict[str, int]
    exports: list[ExportResult]
    warnings: list[str] = field(default_factory=list)


def lookups_needed(stages: list[str]) -> frozenset[str]:
    needs: set[str] = set()
    for stage in stages:
        needs |= EXPORTERS[stage][1]
    return frozenset(needs)


def build_lookups(
    sources: Mapping[str, SourceDocument],
    needs: frozenset[str],
    *,
    strategy: str = "single_pass",
    today: date | None = None,
    observer: ProgressObserver | None = None,
    every: int = 100_000,
    on_missing: Callable[[str, str], None] | None = None,
) -> Lookups:
    """Build the lookup tables the selected exporters need; others stay empty.

    DAR lists feed postal codes, roads and positions; MAT lists feed the
    ownership districts and parcels. Each source is opened at most once.
    """
    runner = LOOKUP_RUNNERS[strategy]
    today = today or local_today()
    hooks = {"observer": observer, "every": every}

    postal = PostalCodeBuilder(**hooks)
    roads = RoadMunicipalityBuilder(**hooks)
    positions = AddressPositionBuilder(**hooks)
    districts = OwnershipDistrictBuilder(**hooks)
    parcels = CadastralParcelBuilder(districts, today=today, **hooks)

    def _missing_for(source: str) -> Callable[[str], None] | None:
        if on_missing is None:
            return None
        return lambda list_name: on_missing(source, list_name)

    dar_handlers = [
        handler
        for need, handler in ((POSTAL_CODES, postal), (ROADS, roads), (POSITIONS, positions))
        if need in needs
    ]
    if dar_handlers:
        dar = sources[DAR_SOURCE]
        with dar.open() as stream:
            runner(stream, dar_handlers, name=dar.location, on_missing=_missing_for(DAR_SOURCE))

    if PARCELS in needs:
        mat = sources[MAT_SOURCE]
        with mat.open() as stream:
            runner(stream, [districts, parcels], name=mat.location, on_missing=_missing_for(MAT_SOURCE))

    return Lookups(
        postal_codes=postal.table.freeze() if POSTAL_CODES in needs else LookupTable.empty(POSTAL_CODES),
        roads=roads.table.freeze() if ROADS in needs else LookupTable.empty(ROADS),
        parcels=parcels.freeze() if PARCELS in needs else LookupTable.empty(PARCELS),
        positions=positions.table.freeze() if POSITIONS in needs else LookupTable.empty(POSITIONS),
    )


def _resolve_needed_sources(cfg: dict, needs: frozenset[str]) -> dict[str, SourceDocument]:
    # Every exporter reads DAR, either directly or through its lookups.
    names = [DAR_SOURCE]
    if PARCELS in needs:
        names.append(MAT_SOURCE)
    return {name: resolve_source(name, cfg["sources"][name], cfg["http"]) for name in names}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _run_exporter(
    stage: str,
    ctx: ExportContext,
    lookups: Lookups,
    logger: logging.Logger,
    run_id: str,
) -> ExportResult:
    exporter = EXPORTERS[stage][0]
    log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
    started = time.monotonic()
    try:
        result = exporter(ctx, lookups)
    except Exception as exc:
        error_code = exc.error_code if isinstance(exc, PipelineError) else "UNEXPECTED_ERROR"
        log_event(
            logger,
            f"stage failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            stage=stage,
            event="STAGE_FAIL",
            status="error",
            duration_ms=_elapsed_ms(started),
            error_code=error_code,
        )
        raise
    result.duration_ms = _elapsed_ms(started)
    for warning in result.warnings:
        log_event(
            logger,
            warning,
            level=logging.WARNING,
            run_id=run_id,
            stage=stage,
            source=DAR_SOURCE,
            event="LIST_NOT_FOUND",
            status="warning",
        )
    log_event(
        logger,
        "stage end",
        run_id=run_id,
        stage=stage,
        event="STAGE_END",
        status="ok",
        duration_ms=result.duration_ms,
        rows_out=result.rows,
    )
    return result


def run_export(
    cfg: dict,
    stages: list[str],
    *,
    logger: logging.Logger,
    run_id: str,
    today: date | None = None,
    observer: ProgressObserver | None = None,
) -> RunResult:
    for stage in stages:
        if stage not in EXPORTERS:
            raise ValueError(f"Unknown stage: {stage}")
    observer = observer or logging_observer(logger, run_id)
    needs = lookups_needed(stages)
    sources = _resolve_needed_sources(cfg, needs)
    warnings: list[str] = []

    def _on_missing(source: str, list_name: str) -> None:
        warnings.append(missing_list_warning(list_name))
        log_event(
            logger,
            f"list {list_name} not found",
            level=logging.WARNING,
            run_id=run_id,
            stage="lookups",
            source=source,
            event="LIST_NOT_FOUND",
            status="warning",
        )

    log_event(logger, "lookups start", run_id=run_id, stage="lookups", event="LOOKUP_START", status="ok")
    started = time.monotonic()
    try:
        lookups = build_lookups(
            sources,
            needs,
            strategy=cfg["lookup_strategy"],
            today=today,
            observer=observer,
            every=cfg["progress"]["every"],
            on_missing=_on_missing,
        )
    except PipelineError:
        raise
    except Exception as exc:
        log_event(
            logger,
            f"lookups failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            stage="lookups",
            event="STAGE_FAIL",
            status="error",
            duration_ms=_elapsed_ms(started),
            error_code=StageError.error_code,
        )
        raise StageError(f"Lookup build failed: {exc}") from exc
    sizes = lookups.sizes()
    log_event(
        logger,
        f"lookups built: {sizes}",
        run_id=run_id,
        stage="lookups",
        event="LOOKUP_END",
        status="ok",
        duration_ms=_elapsed_ms(started),
        rows_out=sum(sizes.values()),
    )

    sink = DirectorySink(Path(cfg["output"]["directory"]))
    ctx = ExportContext.from_config(cfg, sources, sink, observer=observer)
    max_workers = min(cfg["concurrency"]["max_workers"], len(stages)) or 1
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="exporter") as pool:
        futures = [(stage, pool.submit(_run_exporter, stage, ctx, lookups, logger, run_id)) for stage in stages]

    exports: list[ExportResult] = []
    for stage, future in futures:
        exc = future.exception()
        if exc is None:
            exports.append(future.result())
            continue
        if isinstance(exc, PipelineError):
            raise exc
        raise StageError(f"Exporter {stage} failed: {exc}") from exc

    for result in exports:
        verify_output(sink.path_for(result.filename), result.header, result.bytes_written, encoding=ctx.encoding)
        warnings.extend(result.warnings)

    return RunResult(stages=list(stages), lookup_sizes=sizes, exports=exports, warnings=warnings)
