"""Lookup table builders over DAR and MAT entity lists.

Each builder folds one named list into a ``LookupTableBuilder``. Builders are
driven either by a single forward pass over a document (lists handled in file
order) or by seeking back to the start of the document for every list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import BinaryIO, Callable, Generic, Iterator, Mapping, TypeVar

from datafordeler.common.constants import (
    ADRESSEPUNKT_LIST,
    EJERLAV_LIST,
    JORDSTYKKE_LIST,
    NAVNGIVEN_VEJ_KOMMUNEDEL_LIST,
    POSTNUMMER_LIST,
)
from datafordeler.common.errors import SourceError
from datafordeler.common.models import CadastralParcelEntry, PostalCodeEntry, RoadMunicipalityEntry
from datafordeler.common.progress import ProgressCounter, ProgressObserver
from datafordeler.pipeline.scanner import JsonListScanner
from datafordeler.pipeline.temporal import VALIDITY_FIELDS, is_currently_valid

V = TypeVar("V")

FIRST_WINS = "first_wins"
OVERWRITE = "overwrite"

MissingListCallback = Callable[[str], None]


class LookupTable(Mapping[str, V]):
    """Read-only keyed view produced by ``LookupTableBuilder.freeze``."""

    def __init__(self, name: str, entries: dict[str, V]) -> None:
        self.name = name
        self._entries = entries

    def __getitem__(self, key: str) -> V:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"LookupTable({self.name!r}, size={len(self)})"

    @classmethod
    def empty(cls, name: str) -> "LookupTable[V]":
        return cls(name, {})


class LookupTableBuilder(Generic[V]):
    def __init__(self, name: str, policy: str) -> None:
        if policy not in (FIRST_WINS, OVERWRITE):
            raise ValueError(f"Unknown duplicate policy: {policy}")
        self.name = name
        self.policy = policy
        self._entries: dict[str, V] = {}
        self._frozen = False

    def add(self, key: str, value: V) -> bool:
        if self._frozen:
            raise RuntimeError(f"Lookup {self.name} is frozen")
        if self.policy == FIRST_WINS and key in self._entries:
            return False
        self._entries[key] = value
        return True

    def get(self, key: str) -> V | None:
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def freeze(self) -> LookupTable[V]:
        self._frozen = True
        return LookupTable(self.name, self._entries)


class ListHandler:
    """Consumes the projected elements of one named list."""

    list_name: str = ""
    fields: tuple[str, ...] = ()

    def __init__(self, *, observer: ProgressObserver | None = None, every: int = 100_000) -> None:
        self.progress = ProgressCounter(self.list_name, observer=observer, every=every)
        self.completed = False

    def feed(self, item: dict[str, str | None]) -> None:
        raise NotImplementedError

    def list_done(self) -> None:
        self.completed = True


class PostalCodeBuilder(ListHandler):
    list_name = POSTNUMMER_LIST
    fields = ("id_lokalId", "postnr", "navn")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.table: LookupTableBuilder[PostalCodeEntry] = LookupTableBuilder("postal_codes", OVERWRITE)

    def feed(self, item: dict[str, str | None]) -> None:
        key = item["id_lokalId"]
        if not key:
            return
        self.table.add(key, PostalCodeEntry(item["postnr"] or "", item["navn"] or ""))
        self.progress.tick()


class RoadMunicipalityBuilder(ListHandler):
    list_name = NAVNGIVEN_VEJ_KOMMUNEDEL_LIST
    fields = ("navngivenVej", "kommune", "vejkode")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.table: LookupTableBuilder[RoadMunicipalityEntry] = LookupTableBuilder("roads", FIRST_WINS)

    def feed(self, item: dict[str, str | None]) -> None:
        key = item["navngivenVej"]
        kommune = item["kommune"]
        vejkode = item["vejkode"]
        if not key or kommune is None or vejkode is None:
            return
        self.table.add(key, RoadMunicipalityEntry(kommune, vejkode))
        self.progress.tick()


class AddressPositionBuilder(ListHandler):
    list_name = ADRESSEPUNKT_LIST
    fields = ("id_lokalId", "position")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.table: LookupTableBuilder[str] = LookupTableBuilder("positions", OVERWRITE)

    def feed(self, item: dict[str, str | None]) -> None:
        key = item["id_lokalId"]
        position = item["position"]
        if not key or not position:
            return
        self.table.add(key, position)
        self.progress.tick()


class OwnershipDistrictBuilder(ListHandler):
    list_name = EJERLAV_LIST
    fields = ("id_lokalId", "ejerlavsnavn")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.table: LookupTableBuilder[str] = LookupTableBuilder("ownership_districts", OVERWRITE)

    def feed(self, item: dict[str, str | None]) -> None:
        key = item["id_lokalId"]
        name = item["ejerlavsnavn"]
        if not key or not name:
            return
        self.table.add(key, name)
        self.progress.tick()


class CadastralParcelBuilder(ListHandler):
    """Builds parcel id -> (parcel number, ownership district name).

    The district name is joined at build time. When the parcel list is read
    before the district list, valid candidates are held back and joined in
    ``freeze`` once both lists have been seen.
    """

    list_name = JORDSTYKKE_LIST
    fields = ("id_lokalId", "matrikelnummer", "ejerlavLokalId", *VALIDITY_FIELDS)

    def __init__(self, districts: OwnershipDistrictBuilder, *, today: date, **kwargs) -> None:
        super().__init__(**kwargs)
        self.districts = districts
        self.today = today
        self.table: LookupTableBuilder[CadastralParcelEntry] = LookupTableBuilder("parcels", OVERWRITE)
        self._deferred: list[tuple[str, str, str]] = []

    def feed(self, item: dict[str, str | None]) -> None:
        if not is_currently_valid(item, self.today):
            return
        key = item["id_lokalId"]
        parcel_number = item["matrikelnummer"]
        district_id = item["ejerlavLokalId"]
        if not key or not parcel_number or not district_id:
            return
        if self.districts.completed:
            self._join(key, parcel_number, district_id)
        else:
            self._deferred.append((key, parcel_number, district_id))

    def _join(self, key: str, parcel_number: str, district_id: str) -> None:
        district_name = self.districts.table.get(district_id)
        if district_name is None:
            return
        self.table.add(key, CadastralParcelEntry(parcel_number, district_name))
        self.progress.tick()

    @property
    def deferred_count(self) -> int:
        return len(self._deferred)

    def freeze(self) -> LookupTable[CadastralParcelEntry]:
        for key, parcel_number, district_id in self._deferred:
            self._join(key, parcel_number, district_id)
        self._deferred = []
        return self.table.freeze()


@dataclass(frozen=True)
class Lookups:
    postal_codes: LookupTable[PostalCodeEntry]
    roads: LookupTable[RoadMunicipalityEntry]
    parcels: LookupTable[CadastralParcelEntry]
    positions: LookupTable[str]

    def sizes(self) -> dict[str, int]:
        return {
            "postal_codes": len(self.postal_codes),
            "roads": len(self.roads),
            "parcels": len(self.parcels),
            "positions": len(self.positions),
        }


def run_single_pass(
    stream: BinaryIO,
    handlers: list[ListHandler],
    *,
    name: str = "<stream>",
    on_missing: MissingListCallback | None = None,
) -> None:
    """Feed every handler while one cursor walks the document in file order."""
    scanner = JsonListScanner(stream, name=name)
    pending = {handler.list_name: handler for handler in handlers}
    for list_name in scanner.iter_lists():
        handler = pending.pop(list_name, None)
        if handler is None:
            continue
        for item in scanner.iter_items(handler.fields):
            handler.feed(item)
        handler.list_done()
        if not pending:
            break
    if on_missing is not None:
        for list_name in pending:
            on_missing(list_name)


def run_seek_passes(
    stream: BinaryIO,
    handlers: list[ListHandler],
    *,
    name: str = "<stream>",
    on_missing: MissingListCallback | None = None,
) -> None:
    """Rewind the stream and scan once per handler, in handler order."""
    if not stream.seekable():
        raise SourceError(f"Source {name} is not seekable; use the single_pass lookup strategy")
    for handler in handlers:
        stream.seek(0)
        scanner = JsonListScanner(stream, name=name)
        if not scanner.find_list(handler.list_name):
            if on_missing is not None:
                on_missing(handler.list_name)
            continue
        for item in scanner.iter_items(handler.fields):
            handler.feed(item)
        handler.list_done()


LOOKUP_RUNNERS = {
    "single_pass": run_single_pass,
    "seek": run_seek_passes,
}
