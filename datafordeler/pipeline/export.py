"""The four CSV exporters: RoadName, PostCode, AddressAccess, AddressSpecific."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from datafordeler.common.constants import (
    ADRESSE_LIST,
    DAR_SOURCE,
    HUSNUMMER_LIST,
    NAVNGIVEN_VEJ_LIST,
)
from datafordeler.common.models import RoadNameRecord, RoadMunicipalityEntry, UnitAddressRecord
from datafordeler.common.progress import ProgressCounter, ProgressObserver
from datafordeler.pipeline.csv_sink import CsvSink
from datafordeler.pipeline.enrich import HUSNUMMER_FIELDS, AddressAccessEnricher
from datafordeler.pipeline.lookups import LookupTable, Lookups
from datafordeler.pipeline.scanner import scan_list
from datafordeler.storage.sinks import DirectorySink
from datafordeler.storage.sources import SourceDocument

ROAD_NAME_HEADER = ["MunicipalityCode", "StreetId", "Name"]
POST_CODE_HEADER = ["PostalCode", "", "PostalDistrictName"]
ADDRESS_ACCESS_HEADER = [
    "AddressAccessIdentifier",
    "StreetBuildingIdentifier",
    "BuildingName",
    "MunicipalityCode",
    "StreetCode",
    "PostCodeIdentifier",
    "CadastralDistrictName",
    "LandParcelIdentifier",
    "?",
    "DistrictName",
    "ETRS89utm32Easting",
    "ETRS89utm32Northing",
    "AddressTextAngleMeasure",
    "WGS84GeographicLatitude",
    "WGS84GeographicLongitude",
    "GeometryDDKNcell100mText",
    "GeometryDDKNcell1kmText",
    "GeometryDDKNcell10kmText",
]
ADDRESS_SPECIFIC_HEADER = ["unitAddressId", "", "buildingAddressId", "", "", "", "floor", "door"]

NAVNGIVEN_VEJ_FIELDS = ("id_lokalId", "vejnavn")
ADRESSE_FIELDS = ("id_lokalId", "husnummer", "etagebetegnelse", "dørbetegnelse")


@dataclass(frozen=True)
class ExportContext:
    sources: Mapping[str, SourceDocument]
    sink: DirectorySink
    filenames: Mapping[str, str]
    encoding: str = "utf-8"
    flush_every: int = 10_000
    observer: ProgressObserver | None = None
    progress_every: int = 100_000

    @classmethod
    def from_config(
        cls,
        cfg: dict,
        sources: Mapping[str, SourceDocument],
        sink: DirectorySink,
        observer: ProgressObserver | None = None,
    ) -> "ExportContext":
        output = cfg["output"]
        return cls(
            sources=sources,
            sink=sink,
            filenames=output["filenames"],
            encoding=output["encoding"],
            flush_every=output["flush_every"],
            observer=observer,
            progress_every=cfg["progress"]["every"],
        )

    def csv_sink(self, stream, header: list[str]) -> CsvSink:
        return CsvSink(stream, header, encoding=self.encoding, flush_every=self.flush_every)

    def progress(self, stage: str) -> ProgressCounter:
        return ProgressCounter(stage, observer=self.observer, every=self.progress_every)


@dataclass
class ExportResult:
    stage: str
    filename: str
    header: list[str]
    rows: int = 0
    bytes_written: int = 0
    warnings: list[str] = field(default_factory=list)
    duration_ms: int | None = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "filename": self.filename,
            "rows": self.rows,
            "warnings": list(self.warnings),
            "duration_ms": self.duration_ms,
        }


def missing_list_warning(list_name: str) -> str:
    return f"LIST_NOT_FOUND:{list_name}"


def road_name_record(item: dict[str, str | None], roads: LookupTable[RoadMunicipalityEntry]) -> RoadNameRecord | None:
    road_id = item["id_lokalId"]
    name = item["vejnavn"]
    if not road_id or not name:
        return None
    entry = roads.get(road_id)
    if entry is None:
        return None
    return RoadNameRecord(entry.municipality_code, entry.road_code, name)


def export_road_names(ctx: ExportContext, lookups: Lookups) -> ExportResult:
    result = ExportResult("road-name", ctx.filenames["road_name"], ROAD_NAME_HEADER)
    progress = ctx.progress(result.stage)
    dar = ctx.sources[DAR_SOURCE]

    def _missing(list_name: str) -> None:
        result.warnings.append(missing_list_warning(list_name))

    with dar.open() as stream, ctx.sink.open(result.filename) as out, ctx.csv_sink(out, result.header) as csv_sink:
        for item in scan_list(stream, NAVNGIVEN_VEJ_LIST, NAVNGIVEN_VEJ_FIELDS, name=dar.location, on_missing=_missing):
            progress.tick()
            record = road_name_record(item, lookups.roads)
            if record is None:
                continue
            csv_sink.write_row(record.to_row())
    result.rows = csv_sink.rows_written
    result.bytes_written = csv_sink.bytes_written
    return result


def export_post_codes(ctx: ExportContext, lookups: Lookups) -> ExportResult:
    result = ExportResult("post-code", ctx.filenames["post_code"], POST_CODE_HEADER)
    with ctx.sink.open(result.filename) as out, ctx.csv_sink(out, result.header) as csv_sink:
        for entry in lookups.postal_codes.values():
            if not entry.postal_code or not entry.district_name:
                continue
            csv_sink.write_row([entry.postal_code, "", entry.district_name])
    result.rows = csv_sink.rows_written
    result.bytes_written = csv_sink.bytes_written
    return result


def export_address_access(ctx: ExportContext, lookups: Lookups) -> ExportResult:
    result = ExportResult("address-access", ctx.filenames["address_access"], ADDRESS_ACCESS_HEADER)
    progress = ctx.progress(result.stage)
    enricher = AddressAccessEnricher(lookups)
    dar = ctx.sources[DAR_SOURCE]

    def _missing(list_name: str) -> None:
        result.warnings.append(missing_list_warning(list_name))

    with dar.open() as stream, ctx.sink.open(result.filename) as out, ctx.csv_sink(out, result.header) as csv_sink:
        for item in scan_list(stream, HUSNUMMER_LIST, HUSNUMMER_FIELDS, name=dar.location, on_missing=_missing):
            csv_sink.write_row(enricher.enrich(item).to_row())
            progress.tick()
    result.rows = csv_sink.rows_written
    result.bytes_written = csv_sink.bytes_written
    return result


def export_address_specific(ctx: ExportContext, lookups: Lookups) -> ExportResult:
    result = ExportResult("address-specific", ctx.filenames["address_specific"], ADDRESS_SPECIFIC_HEADER)
    progress = ctx.progress(result.stage)
    dar = ctx.sources[DAR_SOURCE]

    def _missing(list_name: str) -> None:
        result.warnings.append(missing_list_warning(list_name))

    with dar.open() as stream, ctx.sink.open(result.filename) as out, ctx.csv_sink(out, result.header) as csv_sink:
        for item in scan_list(stream, ADRESSE_LIST, ADRESSE_FIELDS, name=dar.location, on_missing=_missing):
            record = UnitAddressRecord(
                unit_address_id=item["id_lokalId"],
                building_address_id=item["husnummer"],
                floor=item["etagebetegnelse"],
                door=item["dørbetegnelse"],
            )
            csv_sink.write_row(record.to_row())
            progress.tick()
    result.rows = csv_sink.rows_written
    result.bytes_written = csv_sink.bytes_written
    return result
