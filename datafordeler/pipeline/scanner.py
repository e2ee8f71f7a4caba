"""Forward-only scanner over array-valued top-level properties of a large JSON document.

The document is tokenised with ``ijson`` and never materialised. A scanner keeps a
single cursor: callers find a list (``find_list``) or walk all lists in file order
(``iter_lists``) and pull projected elements with ``iter_items``. Properties outside
the projection are skipped token by token, so deep irrelevant subtrees cost no
allocations beyond the tokenizer's own.
"""

from __future__ import annotations

from typing import BinaryIO, Callable, Collection, Iterator

import ijson

from datafordeler.common.errors import JsonParseError

Projection = Callable[[str], bool]

_OPENERS = frozenset({"start_map", "start_array"})
_CLOSERS = frozenset({"end_map", "end_array"})

# Depth of the cursor while it sits directly inside a top-level array:
# 1 for the root object, 1 for the array.
_LIST_DEPTH = 2


def as_projection(fields: Collection[str] | Projection) -> Projection:
    if callable(fields):
        return fields
    wanted = frozenset(fields)
    return wanted.__contains__


class JsonListScanner:
    def __init__(self, stream: BinaryIO, *, name: str = "<stream>") -> None:
        self.name = name
        self._events = ijson.basic_parse(stream)
        self._depth = 0
        self._exhausted = False

    def _next(self) -> tuple[str, object] | None:
        if self._exhausted:
            return None
        try:
            event, value = next(self._events)
        except StopIteration:
            self._exhausted = True
            return None
        except ijson.JSONError as exc:
            self._exhausted = True
            raise JsonParseError(f"Malformed JSON in {self.name}: {exc}") from exc
        if event in _OPENERS:
            self._depth += 1
        elif event in _CLOSERS:
            self._depth -= 1
        return event, value

    def _require_next(self) -> tuple[str, object]:
        token = self._next()
        if token is None:
            raise JsonParseError(f"Unexpected end of document in {self.name}")
        return token

    def _skip_value(self, event: str) -> None:
        """Consume the rest of a value whose first event has already been read."""
        if event not in _OPENERS:
            return
        target = self._depth - 1
        while self._depth > target:
            self._require_next()

    def _leave_open_list(self) -> None:
        # A previous list may have been abandoned mid-array.
        while self._depth > 1:
            self._require_next()

    def _next_top_level_key(self) -> str | None:
        self._leave_open_list()
        while True:
            token = self._next()
            if token is None:
                return None
            event, value = token
            if event == "map_key" and self._depth == 1:
                return str(value)
            if self._depth > 1:
                # Root is not an object; nothing here is a named list.
                self._leave_open_list()

    def _enter_value(self) -> bool:
        """Step onto the value of the key just read; True when it opens an array."""
        event, _value = self._require_next()
        if event == "start_array":
            return True
        self._skip_value(event)
        return False

    def find_list(self, name: str) -> bool:
        """Advance to the array value of top-level property ``name``.

        Returns False when the property is absent (end of stream reached) or its
        value is not an array. The cursor only moves forward.
        """
        while True:
            key = self._next_top_level_key()
            if key is None:
                return False
            if key != name:
                self._skip_value(self._require_next()[0])
                continue
            return self._enter_value()

    def iter_lists(self) -> Iterator[str]:
        """Yield each array-valued top-level property in file order.

        After each name the cursor sits at the start of that array; whatever the
        caller leaves unread is skipped before the next name is produced.
        """
        while True:
            key = self._next_top_level_key()
            if key is None:
                return
            if self._enter_value():
                yield key

    def iter_items(self, fields: Collection[str] | Projection) -> Iterator[dict[str, str | None]]:
        """Yield one projected element per object in the current array.

        Every wanted field a projection names up front is present in each result,
        ``None`` when missing or when its value is not a string.
        """
        if self._depth != _LIST_DEPTH:
            return
        wanted = as_projection(fields)
        template = dict.fromkeys(fields) if not callable(fields) else {}
        while True:
            event, _value = self._require_next()
            if event == "end_array":
                return
            if event != "start_map":
                self._skip_value(event)
                continue
            yield self._read_object(wanted, dict(template))

    def _read_object(self, wanted: Projection, record: dict[str, str | None]) -> dict[str, str | None]:
        while True:
            event, value = self._require_next()
            if event == "end_map":
                return record
            key = str(value)
            event, value = self._require_next()
            if wanted(key):
                record[key] = value if event == "string" else None
            self._skip_value(event)


def scan_list(
    stream: BinaryIO,
    list_name: str,
    fields: Collection[str] | Projection,
    *,
    name: str = "<stream>",
    on_missing: Callable[[str], None] | None = None,
) -> Iterator[dict[str, str | None]]:
    """Yield projected elements of one named list from a fresh stream."""
    scanner = JsonListScanner(stream, name=name)
    if not scanner.find_list(list_name):
        if on_missing is not None:
            on_missing(list_name)
        return
    yield from scanner.iter_items(fields)
