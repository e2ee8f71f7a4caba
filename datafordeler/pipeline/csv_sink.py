"""Incremental semicolon-delimited CSV writer over a binary stream.

Values are joined as-is: no quoting and no escaping. Registry values are not
expected to contain the delimiter.
"""

from __future__ import annotations

import codecs
from types import TracebackType
from typing import BinaryIO, Sequence

DELIMITER = ";"
LINE_TERMINATOR = "\n"


class CsvSink:
    def __init__(
        self,
        stream: BinaryIO,
        header: Sequence[str],
        *,
        encoding: str = "utf-8",
        flush_every: int = 10_000,
    ) -> None:
        self._stream = stream
        self._encoder = codecs.getincrementalencoder(encoding)()
        self.flush_every = flush_every
        self.rows_written = 0
        self.bytes_written = 0
        self._closed = False
        self._write_line(header)

    def _write_line(self, values: Sequence[str]) -> None:
        line = DELIMITER.join(values) + LINE_TERMINATOR
        self._write_bytes(self._encoder.encode(line))

    def _write_bytes(self, data: bytes) -> None:
        self._stream.write(data)
        self.bytes_written += len(data)

    def write_row(self, values: Sequence[str]) -> None:
        if self._closed:
            raise ValueError("write to closed CsvSink")
        self._write_line(values)
        self.rows_written += 1
        if self.rows_written % self.flush_every == 0:
            self._stream.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._write_bytes(self._encoder.encode("", final=True))
        self._stream.flush()
        self._closed = True

    def __enter__(self) -> "CsvSink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
