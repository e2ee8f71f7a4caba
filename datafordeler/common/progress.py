"""Progress observer hook for long-running scans."""

from __future__ import annotations

import logging
from typing import Callable

from datafordeler.common.logging import log_event

ProgressObserver = Callable[[str, int], None]


class ProgressCounter:
    def __init__(self, stage: str, observer: ProgressObserver | None = None, every: int = 100_000) -> None:
        self.stage = stage
        self.observer = observer
        self.every = every
        self.count = 0

    def tick(self) -> None:
        self.count += 1
        if self.observer is not None and self.count % self.every == 0:
            self.observer(self.stage, self.count)


def logging_observer(logger: logging.Logger, run_id: str) -> ProgressObserver:
    def _observe(stage: str, count: int) -> None:
        log_event(
            logger,
            f"{stage}: {count} records",
            run_id=run_id,
            stage=stage,
            event="PROGRESS",
            status="ok",
            rows_in=count,
        )

    return _observe
