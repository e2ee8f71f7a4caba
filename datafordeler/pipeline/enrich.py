"""Join HusnummerList elements against the lookup tables."""

from __future__ import annotations

from datafordeler.common.geometry import parse_point
from datafordeler.common.models import AddressAccessRecord
from datafordeler.pipeline.lookups import Lookups

HUSNUMMER_FIELDS = ("adgangspunkt", "husnummertekst", "postnummer", "navngivenVej", "jordstykke")


class AddressAccessEnricher:
    """Resolves postal code, road, parcel and position for one access point.

    A miss on any lookup leaves the corresponding fields empty; it never drops
    the record.
    """

    def __init__(self, lookups: Lookups) -> None:
        self.lookups = lookups

    def enrich(self, item: dict[str, str | None]) -> AddressAccessRecord:
        record = AddressAccessRecord(
            access_point_id=item.get("adgangspunkt"),
            street_building_identifier=item.get("husnummertekst"),
            parcel_reference=item.get("jordstykke"),
        )
        self._apply_postal_code(record, item.get("postnummer"))
        self._apply_road(record, item.get("navngivenVej"))
        self._apply_parcel(record)
        self._apply_position(record)
        return record

    def _apply_postal_code(self, record: AddressAccessRecord, postnummer: str | None) -> None:
        entry = self.lookups.postal_codes.get(postnummer) if postnummer else None
        if entry is None:
            record.postal_code = None
            record.district_name = None
            return
        record.postal_code = entry.postal_code
        record.district_name = entry.district_name

    def _apply_road(self, record: AddressAccessRecord, navngiven_vej: str | None) -> None:
        entry = self.lookups.roads.get(navngiven_vej) if navngiven_vej else None
        if entry is None:
            record.municipality_code = None
            record.street_code = None
            return
        record.municipality_code = entry.municipality_code
        record.street_code = entry.road_code

    def _apply_parcel(self, record: AddressAccessRecord) -> None:
        reference = record.parcel_reference
        entry = self.lookups.parcels.get(reference) if reference else None
        if entry is None:
            record.parcel_number = None
            record.cadastral_district_name = None
            return
        record.parcel_number = entry.parcel_number
        record.cadastral_district_name = entry.district_name

    def _apply_position(self, record: AddressAccessRecord) -> None:
        access_point_id = record.access_point_id
        raw = self.lookups.positions.get(access_point_id) if access_point_id else None
        record.easting, record.northing = parse_point(raw)
