"""Resolve configured source locations to openable byte streams.

A location is a JSON file, a ZIP archive holding the export, a directory
searched by file-name prefix, or an HTTP(S) URL.
"""

from __future__ import annotations

import zipfile
from contextlib import ExitStack, closing, contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

from datafordeler.common.errors import SourceError
from datafordeler.common.http import HttpClient

Opener = Callable[[ExitStack], BinaryIO]

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class SourceDocument:
    name: str
    location: str
    seekable: bool
    opener: Opener

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        """Open a fresh, independent read cursor over the document."""
        with ExitStack() as stack:
            yield self.opener(stack)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def extract_timestamp(filename: str, prefix: str) -> datetime | None:
    """Parse ``<prefix><YYYYMMDDHHMMSS>.<ext>``; None when the name does not fit."""
    if not filename.lower().startswith(prefix.lower()):
        return None
    stem = Path(filename[len(prefix):]).stem
    if len(stem) != 14 or not stem.isdigit():
        return None
    try:
        return datetime.strptime(stem, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def find_latest_by_prefix(directory: Path, prefix: str) -> Path:
    candidates: list[tuple[datetime, Path]] = []
    for path in directory.iterdir():
        if not path.is_file():
            continue
        timestamp = extract_timestamp(path.name, prefix)
        if timestamp is not None:
            candidates.append((timestamp, path))
    if not candidates:
        raise SourceError(f"No file named {prefix}<YYYYMMDDHHMMSS>.* in {directory}")
    return max(candidates)[1]


def select_json_entry(archive: zipfile.ZipFile) -> str:
    """Pick the export document inside a registry ZIP, ignoring metadata files."""
    entries = [
        info
        for info in archive.infolist()
        if not info.is_dir()
        and info.filename.lower().endswith(".json")
        and "metadata" not in info.filename.lower()
    ]
    if not entries:
        raise SourceError(f"No JSON document found in {archive.filename}")
    # Largest first; ties broken by name so the choice is stable.
    entries.sort(key=lambda info: (-info.file_size, info.filename))
    return entries[0].filename


def _file_opener(path: Path) -> Opener:
    def _open(stack: ExitStack) -> BinaryIO:
        return stack.enter_context(path.open("rb"))

    return _open


def _zip_opener(path: Path, entry_name: str) -> Opener:
    def _open(stack: ExitStack) -> BinaryIO:
        archive = stack.enter_context(zipfile.ZipFile(path))
        return stack.enter_context(archive.open(entry_name))

    return _open


def _http_opener(url: str, http_cfg: dict) -> Opener:
    def _open(stack: ExitStack) -> BinaryIO:
        client = stack.enter_context(HttpClient.from_config(http_cfg))
        return stack.enter_context(closing(client.open_stream(url)))

    return _open


def resolve_source(name: str, source_cfg: dict, http_cfg: dict) -> SourceDocument:
    location = source_cfg["location"].strip()
    if _is_url(location):
        return SourceDocument(name=name, location=location, seekable=False, opener=_http_opener(location, http_cfg))

    path = Path(location)
    if path.is_dir():
        prefix = source_cfg.get("prefix")
        if not prefix:
            raise SourceError(f"Source {name} points at directory {path} but has no prefix")
        path = find_latest_by_prefix(path, prefix)

    if not path.exists():
        raise SourceError(f"Source {name} not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        return SourceDocument(name=name, location=str(path), seekable=True, opener=_file_opener(path))
    if suffix == ".zip":
        try:
            with zipfile.ZipFile(path) as archive:
                entry_name = select_json_entry(archive)
        except zipfile.BadZipFile as exc:
            raise SourceError(f"Source {name} is not a valid ZIP archive: {path}") from exc
        return SourceDocument(
            name=name,
            location=f"{path}!{entry_name}",
            seekable=True,
            opener=_zip_opener(path, entry_name),
        )
    raise SourceError(f"Unsupported source format for {name}: {path}")
