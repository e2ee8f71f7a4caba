import io
import json
from datetime import date

import pytest

from datafordeler.common.errors import SourceError
from datafordeler.common.models import CadastralParcelEntry, PostalCodeEntry, RoadMunicipalityEntry
from datafordeler.pipeline.lookups import (
    FIRST_WINS,
    OVERWRITE,
    AddressPositionBuilder,
    CadastralParcelBuilder,
    LookupTable,
    LookupTableBuilder,
    OwnershipDistrictBuilder,
    PostalCodeBuilder,
    RoadMunicipalityBuilder,
    run_seek_passes,
    run_single_pass,
)

TODAY = date(2026, 2, 17)
VALID = {
    "virkningFra": "2017-05-03T12:00:00.000000+02:00",
    "registreringFra": "2017-05-03T12:00:00.000000+02:00",
    "virkningTil": None,
    "registreringTil": None,
}


def _stream(payload) -> io.BytesIO:
    return io.BytesIO(json.dumps(payload).encode("utf-8"))


class NonSeekable(io.RawIOBase):
    def __init__(self, data: bytes):
        self._inner = io.BytesIO(data)

    def readable(self):
        return True

    def seekable(self):
        return False

    def readinto(self, buffer):
        chunk = self._inner.read(len(buffer))
        buffer[: len(chunk)] = chunk
        return len(chunk)


def test_first_wins_keeps_first_value():
    builder = LookupTableBuilder("roads", FIRST_WINS)
    assert builder.add("k", 1) is True
    assert builder.add("k", 2) is False
    assert builder.freeze()["k"] == 1


def test_overwrite_keeps_last_value():
    builder = LookupTableBuilder("postal", OVERWRITE)
    builder.add("k", 1)
    builder.add("k", 2)
    assert builder.freeze()["k"] == 2


def test_frozen_builder_rejects_inserts():
    builder = LookupTableBuilder("postal", OVERWRITE)
    table = builder.freeze()
    with pytest.raises(RuntimeError):
        builder.add("k", 1)
    assert isinstance(table, LookupTable)
    assert len(table) == 0


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        LookupTableBuilder("x", "random")


def test_road_lookup_is_first_write_wins():
    roads = RoadMunicipalityBuilder()
    run_single_pass(
        _stream(
            {
                "NavngivenVejKommunedelList": [
                    {"navngivenVej": "v1", "kommune": "0101", "vejkode": "0001"},
                    {"navngivenVej": "v1", "kommune": "0202", "vejkode": "0002"},
                    {"navngivenVej": "v2", "kommune": None, "vejkode": "0003"},
                ]
            }
        ),
        [roads],
    )
    table = roads.table.freeze()
    assert table["v1"] == RoadMunicipalityEntry("0101", "0001")
    assert "v2" not in table


def test_postal_lookup_overwrites_duplicates_and_keeps_insertion_order():
    postal = PostalCodeBuilder()
    run_single_pass(
        _stream(
            {
                "PostnummerList": [
                    {"id_lokalId": "p1", "postnr": "8000", "navn": "Aarhus C"},
                    {"id_lokalId": "p2", "postnr": "1050", "navn": "København K"},
                    {"id_lokalId": "p1", "postnr": "8200", "navn": "Aarhus N"},
                ]
            }
        ),
        [postal],
    )
    table = postal.table.freeze()
    assert list(table) == ["p1", "p2"]
    assert table["p1"] == PostalCodeEntry("8200", "Aarhus N")


def test_postal_lookup_keeps_entries_with_missing_name_as_empty():
    postal = PostalCodeBuilder()
    run_single_pass(_stream({"PostnummerList": [{"id_lokalId": "p1", "postnr": "8000"}]}), [postal])
    assert postal.table.get("p1") == PostalCodeEntry("8000", "")


def test_single_pass_feeds_handlers_in_file_order_and_reports_missing():
    postal = PostalCodeBuilder()
    positions = AddressPositionBuilder()
    missing: list[str] = []
    run_single_pass(
        _stream(
            {
                "AdressepunktList": [{"id_lokalId": "a1", "position": "POINT(1 2)"}],
                "PostnummerList": [{"id_lokalId": "p1", "postnr": "8000", "navn": "Aarhus C"}],
            }
        ),
        [postal, positions, RoadMunicipalityBuilder()],
        on_missing=missing.append,
    )
    assert positions.table.get("a1") == "POINT(1 2)"
    assert postal.completed and positions.completed
    assert missing == ["NavngivenVejKommunedelList"]


def test_parcels_join_districts_read_first():
    districts = OwnershipDistrictBuilder()
    parcels = CadastralParcelBuilder(districts, today=TODAY)
    run_seek_passes(
        _stream(
            {
                "EjerlavList": [{"id_lokalId": "e1", "ejerlavsnavn": "Aarhus Bygrunde"}],
                "JordstykkeList": [{"id_lokalId": "j1", "matrikelnummer": "12a", "ejerlavLokalId": "e1", **VALID}],
            }
        ),
        [districts, parcels],
    )
    assert parcels.deferred_count == 0
    assert parcels.freeze()["j1"] == CadastralParcelEntry("12a", "Aarhus Bygrunde")


def test_parcels_read_before_districts_are_joined_at_freeze():
    districts = OwnershipDistrictBuilder()
    parcels = CadastralParcelBuilder(districts, today=TODAY)
    run_single_pass(
        _stream(
            {
                "JordstykkeList": [
                    {"id_lokalId": "j1", "matrikelnummer": "12a", "ejerlavLokalId": "e1", **VALID},
                    {"id_lokalId": "j2", "matrikelnummer": "3", "ejerlavLokalId": "unknown", **VALID},
                    {"id_lokalId": "j3", "matrikelnummer": "4", "ejerlavLokalId": "e1", **{**VALID, "virkningTil": "2020-01-01"}},
                ],
                "EjerlavList": [{"id_lokalId": "e1", "ejerlavsnavn": "Aarhus Bygrunde"}],
            }
        ),
        [districts, parcels],
    )
    assert parcels.deferred_count == 2
    table = parcels.freeze()
    assert dict(table) == {"j1": CadastralParcelEntry("12a", "Aarhus Bygrunde")}


def test_seek_passes_require_seekable_stream():
    data = json.dumps({"PostnummerList": []}).encode("utf-8")
    with pytest.raises(SourceError):
        run_seek_passes(NonSeekable(data), [PostalCodeBuilder()])


def test_single_pass_works_on_non_seekable_stream():
    postal = PostalCodeBuilder()
    data = json.dumps({"PostnummerList": [{"id_lokalId": "p1", "postnr": "8000", "navn": "Aarhus C"}]}).encode("utf-8")
    run_single_pass(io.BufferedReader(NonSeekable(data)), [postal])
    assert len(postal.table) == 1


def test_progress_observer_fires_every_n_records():
    calls: list[tuple[str, int]] = []
    postal = PostalCodeBuilder(observer=lambda stage, count: calls.append((stage, count)), every=2)
    items = [{"id_lokalId": f"p{i}", "postnr": str(i), "navn": "x"} for i in range(5)]
    run_single_pass(_stream({"PostnummerList": items}), [postal])
    assert calls == [("PostnummerList", 2), ("PostnummerList", 4)]
