"""Writable byte-stream sinks for CSV output."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from datafordeler.common.fs import ensure_dir


class DirectorySink:
    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, name: str) -> Path:
        return self.directory / name

    @contextmanager
    def open(self, name: str) -> Iterator[BinaryIO]:
        ensure_dir(self.directory)
        with self.path_for(name).open("wb") as f:
            yield f
