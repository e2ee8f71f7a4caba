"""CLI entrypoint for the Datafordeler DAR/MAT to CSV converter."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from datafordeler.common.config_loader import apply_overrides, load_config
from datafordeler.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from datafordeler.common.errors import PipelineError
from datafordeler.common.ids import generate_run_id
from datafordeler.common.logging import build_logger, close_logger, log_event
from datafordeler.common.time_utils import local_today
from datafordeler.pipeline.reports import write_run_summary
from datafordeler.pipeline.runner import run_export

_LOG_LEVELS = {"WARN": "WARNING"}


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--dar", default=None, help="DAR export: .json, .zip, directory or URL")
    parser.add_argument("--mat", default=None, help="MAT export: .json, .zip, directory or URL")
    parser.add_argument("--out-dir", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = local_today().isoformat()
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)
    stages = list(STAGES) if args.command == "all" else [args.command]

    logger = build_logger(run_id, data_dir=data_dir, level=_LOG_LEVELS.get(args.log_level, args.log_level))
    try:
        log_event(logger, f"run start: {', '.join(stages)}", run_id=run_id, event="RUN_START", status="ok")
        try:
            cfg = load_config(config_dir, overlay_config_dir=overlay_config_dir)
            cfg = apply_overrides(cfg, dar=args.dar, mat=args.mat, out_dir=args.out_dir)
            result = run_export(cfg, stages, logger=logger, run_id=run_id)
        except PipelineError as exc:
            log_event(
                logger,
                f"run failed: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                event="RUN_END",
                status="error",
                error_code=exc.error_code,
            )
            write_run_summary(
                data_dir,
                run_id=run_id,
                run_date=run_date,
                stages=stages,
                error={"error_code": exc.error_code, "message": str(exc)},
            )
            return EXIT_HARD_FAIL
        except Exception as exc:
            log_event(
                logger,
                f"unexpected failure: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                event="RUN_END",
                status="error",
                error_code="UNEXPECTED_ERROR",
            )
            write_run_summary(
                data_dir,
                run_id=run_id,
                run_date=run_date,
                stages=stages,
                error={"error_code": "UNEXPECTED_ERROR", "message": str(exc)},
            )
            return EXIT_HARD_FAIL

        write_run_summary(
            data_dir,
            run_id=run_id,
            run_date=run_date,
            stages=stages,
            exports=[export.to_dict() for export in result.exports],
            lookup_sizes=result.lookup_sizes,
            warnings=result.warnings,
        )
        status = "warning" if result.warnings else "ok"
        log_event(
            logger,
            "run end",
            run_id=run_id,
            event="RUN_END",
            status=status,
            rows_out=sum(export.rows for export in result.exports),
        )
        if result.warnings and args.strict:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
