"""JSON-lines logging with a fixed field set.

Every line carries all of ``JSON_LOG_FIELDS``; fields an event does not set are
``null``. Exporters log from worker threads, so the thread name is included.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from datafordeler.common.constants import JSON_LOG_FIELDS
from datafordeler.common.fs import ensure_dir
from datafordeler.common.time_utils import utc_timestamp_iso

_COMPUTED_FIELDS = {"timestamp", "level", "thread", "message"}


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": utc_timestamp_iso(),
            "level": record.levelname,
            "thread": record.threadName,
        }
        for field in JSON_LOG_FIELDS:
            if field not in _COMPUTED_FIELDS:
                payload[field] = getattr(record, field, None)
        payload["message"] = record.getMessage()
        return json.dumps(payload, ensure_ascii=False)


def _attach(logger: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(JsonLineFormatter())
    logger.addHandler(handler)


def build_logger(run_id: str, data_dir: Path, level: str = "INFO") -> logging.Logger:
    """Logger for one run: stderr plus ``<data_dir>/run_meta/<run_id>.log.jsonl``."""
    logger = logging.getLogger(f"datafordeler.{run_id}")
    logger.setLevel(level.upper())
    close_logger(logger)
    logger.propagate = False

    log_path = data_dir / "run_meta" / f"{run_id}.log.jsonl"
    ensure_dir(log_path.parent)
    _attach(logger, logging.StreamHandler())
    _attach(logger, logging.FileHandler(log_path, encoding="utf-8"))
    return logger


def close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def log_event(logger: logging.Logger, message: str, *, level: int = logging.INFO, **event_fields: Any) -> None:
    logger.log(level, message, extra=event_fields)
