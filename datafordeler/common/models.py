"""Data models used across the converter."""

from __future__ import annotations

from dataclasses import dataclass


def _cell(value: str | None) -> str:
    return "" if value is None else value


@dataclass(frozen=True, slots=True)
class PostalCodeEntry:
    postal_code: str
    district_name: str


@dataclass(frozen=True, slots=True)
class RoadMunicipalityEntry:
    municipality_code: str
    road_code: str


@dataclass(frozen=True, slots=True)
class CadastralParcelEntry:
    parcel_number: str
    district_name: str


@dataclass(slots=True)
class AddressAccessRecord:
    """One HusnummerList element, enriched in place before it is written."""

    access_point_id: str | None = None
    street_building_identifier: str | None = None
    building_name: str | None = None
    municipality_code: str | None = None
    street_code: str | None = None
    postal_code: str | None = None
    district_name: str | None = None
    parcel_reference: str | None = None
    parcel_number: str | None = None
    cadastral_district_name: str | None = None
    easting: str | None = None
    northing: str | None = None

    def to_row(self) -> list[str]:
        return [
            _cell(self.access_point_id),
            _cell(self.street_building_identifier),
            _cell(self.building_name),
            _cell(self.municipality_code),
            _cell(self.street_code),
            _cell(self.postal_code),
            _cell(self.cadastral_district_name),
            _cell(self.parcel_number),
            "",
            _cell(self.district_name),
            _cell(self.easting),
            _cell(self.northing),
            "",
            "",
            "",
            "",
            "",
            "",
        ]


@dataclass(frozen=True, slots=True)
class RoadNameRecord:
    municipality_code: str
    road_code: str
    name: str

    def to_row(self) -> list[str]:
        return [self.municipality_code, self.road_code, self.name]


@dataclass(frozen=True, slots=True)
class UnitAddressRecord:
    unit_address_id: str | None
    building_address_id: str | None
    floor: str | None
    door: str | None

    def to_row(self) -> list[str]:
        return [
            _cell(self.unit_address_id),
            "",
            _cell(self.building_address_id),
            "",
            "",
            "",
            _cell(self.floor),
            _cell(self.door),
        ]
