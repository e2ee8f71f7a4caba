from datafordeler.common.models import CadastralParcelEntry, PostalCodeEntry, RoadMunicipalityEntry
from datafordeler.pipeline.enrich import AddressAccessEnricher
from datafordeler.pipeline.lookups import LookupTable, Lookups


def _lookups(**tables) -> Lookups:
    return Lookups(
        postal_codes=LookupTable("postal_codes", tables.get("postal_codes", {})),
        roads=LookupTable("roads", tables.get("roads", {})),
        parcels=LookupTable("parcels", tables.get("parcels", {})),
        positions=LookupTable("positions", tables.get("positions", {})),
    )


def _item(**overrides):
    item = {
        "adgangspunkt": "ap-1",
        "husnummertekst": "12B",
        "postnummer": "pn-1",
        "navngivenVej": "vej-1",
        "jordstykke": "js-1",
    }
    item.update(overrides)
    return item


FULL = _lookups(
    postal_codes={"pn-1": PostalCodeEntry("8000", "Aarhus C")},
    roads={"vej-1": RoadMunicipalityEntry("0751", "1234")},
    parcels={"js-1": CadastralParcelEntry("12a", "Aarhus Bygrunde")},
    positions={"ap-1": "POINT(698217.056989288 6200618.321236086)"},
)


def test_all_lookups_hit_fill_every_enrichable_column():
    row = AddressAccessEnricher(FULL).enrich(_item()).to_row()

    assert row == [
        "ap-1",
        "12B",
        "",
        "0751",
        "1234",
        "8000",
        "Aarhus Bygrunde",
        "12a",
        "",
        "Aarhus C",
        "698217.056989288",
        "6200618.321236086",
        "",
        "",
        "",
        "",
        "",
        "",
    ]


def test_postal_miss_leaves_postal_columns_empty():
    record = AddressAccessEnricher(FULL).enrich(_item(postnummer="pn-unknown"))

    assert record.postal_code is None
    assert record.district_name is None
    assert record.municipality_code == "0751"


def test_absent_references_leave_fields_empty_but_keep_record():
    record = AddressAccessEnricher(FULL).enrich(
        _item(postnummer=None, navngivenVej=None, jordstykke=None, adgangspunkt=None)
    )
    row = record.to_row()

    assert len(row) == 18
    assert row[1] == "12B"
    assert row[0] == "" and row[3:8] == ["", "", "", "", ""]
    assert row[10:12] == ["", ""]


def test_unparseable_position_leaves_coordinates_empty():
    lookups = _lookups(positions={"ap-1": "MULTIPOINT((1 2))"})

    record = AddressAccessEnricher(lookups).enrich(_item())

    assert (record.easting, record.northing) == (None, None)
