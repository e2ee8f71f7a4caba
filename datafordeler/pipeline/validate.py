"""Post-export checks on the written CSV files."""

from __future__ import annotations

from pathlib import Path

from datafordeler.common.errors import ContractError, StageError
from datafordeler.pipeline.csv_sink import DELIMITER, LINE_TERMINATOR


def _read_header(path: Path, encoding: str) -> str | None:
    terminator = LINE_TERMINATOR.encode(encoding)
    with path.open("rb") as f:
        first = f.readline()
    if not first:
        return None
    if first.endswith(terminator):
        first = first[: -len(terminator)]
    return first.decode(encoding)


def verify_output(path: Path, header: list[str], expected_bytes: int, *, encoding: str = "utf-8") -> int:
    """Check the header line and that the file holds every byte the sink wrote.

    Values are written unescaped and may contain line feeds, so rows are not
    recounted from the file. Returns the file size.
    """
    if not path.exists():
        raise StageError(f"Missing CSV output: {path}")
    errors: list[str] = []
    if _read_header(path, encoding) != DELIMITER.join(header):
        errors.append("HEADER_MISMATCH")
    size = path.stat().st_size
    if size != expected_bytes:
        errors.append(f"SIZE_MISMATCH(expected={expected_bytes},actual={size})")
    if errors:
        raise ContractError(f"{path.name}: {';'.join(errors)}")
    return size
