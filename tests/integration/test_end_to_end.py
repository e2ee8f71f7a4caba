import json
import zipfile
from datetime import date
from pathlib import Path

import pytest

from datafordeler.cli import main, parse_args, run_command
from datafordeler.common.config_loader import apply_overrides, load_config
from datafordeler.common.constants import STAGES
from datafordeler.common.logging import build_logger, close_logger
from datafordeler.pipeline.runner import run_export

FIXTURES = Path("tests/fixtures")
TODAY = date(2026, 2, 17)


def _config(tmp_path: Path, *, strategy: str = "single_pass", dar: Path | None = None, mat: Path | None = None) -> dict:
    cfg = apply_overrides(
        load_config(Path("config")),
        dar=str(dar or FIXTURES / "dar_export.json"),
        mat=str(mat or FIXTURES / "mat_export.json"),
        out_dir=str(tmp_path / "out"),
    )
    cfg["lookup_strategy"] = strategy
    cfg["output"]["flush_every"] = 1
    return cfg


def _run(tmp_path: Path, cfg: dict, stages=STAGES):
    logger = build_logger("run-e2e", data_dir=tmp_path / "data")
    try:
        return run_export(cfg, list(stages), logger=logger, run_id="run-e2e", today=TODAY)
    finally:
        close_logger(logger)


def _lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").split("\n")[:-1]


@pytest.mark.integration
@pytest.mark.parametrize("strategy", ["single_pass", "seek"])
def test_all_exporters_match_expected_files(tmp_path: Path, strategy: str):
    result = _run(tmp_path, _config(tmp_path, strategy=strategy))

    for name in ("RoadName", "PostCode", "AddressAccess", "AddressSpecific"):
        written = (tmp_path / "out" / f"{name}.csv").read_bytes()
        assert written == (FIXTURES / f"expected_{name}.csv").read_bytes(), name
    assert {export.stage: export.rows for export in result.exports} == {
        "road-name": 2,
        "post-code": 2,
        "address-access": 3,
        "address-specific": 2,
    }
    assert result.lookup_sizes == {"postal_codes": 3, "roads": 2, "parcels": 1, "positions": 2}
    assert result.warnings == []


@pytest.mark.integration
def test_fully_enriched_access_point_row(tmp_path: Path):
    _run(tmp_path, _config(tmp_path), stages=["address-access"])

    row = _lines(tmp_path / "out" / "AddressAccess.csv")[1].split(";")
    assert row[:12] == [
        "ap-1",
        "1",
        "",
        "0751",
        "1234",
        "8000",
        "Aarhus Bygrunde",
        "12a",
        "",
        "Aarhus C",
        "575000.1",
        "6224000.2",
    ]
    assert row[12:] == [""] * 6


@pytest.mark.integration
def test_road_name_only_skips_mat(tmp_path: Path):
    cfg = _config(tmp_path, mat=tmp_path / "does-not-exist.json")

    result = _run(tmp_path, cfg, stages=["road-name"])

    assert result.lookup_sizes["parcels"] == 0
    assert result.exports[0].rows == 2


@pytest.mark.integration
def test_missing_lists_produce_warnings_and_partial_exit(tmp_path: Path):
    dar = tmp_path / "dar.json"
    dar.write_text(json.dumps({"HusnummerList": [{"adgangspunkt": "a1", "husnummertekst": "1"}]}), encoding="utf-8")
    mat = tmp_path / "mat.json"
    mat.write_text(json.dumps({"EjerlavList": []}), encoding="utf-8")
    data_dir = tmp_path / "data"
    argv = [
        "address-access",
        "--data-dir",
        str(data_dir),
        "--dar",
        str(dar),
        "--mat",
        str(mat),
        "--out-dir",
        str(tmp_path / "out"),
        "--run-id",
        "run-warn",
    ]

    assert run_command(parse_args(argv)) == 0
    assert run_command(parse_args([*argv, "--strict"])) == 10

    summary = json.loads((data_dir / "out" / "reports" / "run_summary.json").read_text(encoding="utf-8"))
    assert summary["status"] == "partial"
    assert "LIST_NOT_FOUND:JordstykkeList" in summary["warnings"]
    assert _lines(tmp_path / "out" / "AddressAccess.csv")[1] == "a1;1" + ";" * 16


@pytest.mark.integration
def test_malformed_json_fails_the_run(tmp_path: Path):
    dar = tmp_path / "dar.json"
    dar.write_bytes(b'{"PostnummerList": [{"id_lokalId": "p1", "postnr": ')
    data_dir = tmp_path / "data"
    argv = ["post-code", "--data-dir", str(data_dir), "--dar", str(dar), "--out-dir", str(tmp_path / "out")]

    assert run_command(parse_args(argv)) == 20

    summary = json.loads((data_dir / "out" / "reports" / "run_summary.json").read_text(encoding="utf-8"))
    assert summary["error"]["error_code"] == "JSON_PARSE_ERROR"


@pytest.mark.integration
def test_zip_sources_found_by_prefix(tmp_path: Path):
    raw = tmp_path / "raw"
    raw.mkdir()
    with zipfile.ZipFile(raw / "DAR_AKTUELT_TOTAL_01_20240101000000.zip", "w") as archive:
        archive.write(FIXTURES / "dar_export.json", "DAR_Total.json")
        archive.writestr("DAR_Metadata.json", "{}")
    with zipfile.ZipFile(raw / "MAT_AKTUELT_TOTAL_01_20240101000000.zip", "w") as archive:
        archive.write(FIXTURES / "mat_export.json", "MAT_Total.json")
    cfg = apply_overrides(load_config(Path("config")), dar=str(raw), mat=str(raw), out_dir=str(tmp_path / "out"))
    cfg["lookup_strategy"] = "seek"

    _run(tmp_path, cfg)

    written = (tmp_path / "out" / "AddressAccess.csv").read_bytes()
    assert written == (FIXTURES / "expected_AddressAccess.csv").read_bytes()


@pytest.mark.integration
def test_line_feed_inside_a_value_is_written_verbatim(tmp_path: Path):
    dar = tmp_path / "dar.json"
    dar.write_text(
        json.dumps({"AdresseList": [{"id_lokalId": "u1", "husnummer": "h1", "etagebetegnelse": "st\n", "dørbetegnelse": "tv"}]}),
        encoding="utf-8",
    )

    result = _run(tmp_path, _config(tmp_path, dar=dar), stages=["address-specific"])

    assert result.exports[0].rows == 1
    assert (tmp_path / "out" / "AddressSpecific.csv").read_text(encoding="utf-8") == (
        "unitAddressId;;buildingAddressId;;;;floor;door\nu1;;h1;;;;st\n;tv\n"
    )


@pytest.mark.integration
def test_corrupt_zip_payload_fails_run_and_replaces_previous_summary(tmp_path: Path):
    data_dir = tmp_path / "data"
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    base = ["post-code", "--data-dir", str(data_dir), "--out-dir", str(tmp_path / "out")]

    assert main([*base, "--dar", str(FIXTURES / "dar_export.json")]) == 0
    assert json.loads(summary_path.read_text(encoding="utf-8"))["status"] == "success"

    archive_path = tmp_path / "dar.zip"
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_STORED) as archive:
        archive.write(FIXTURES / "dar_export.json", "DAR_Total.json")
    archive_path.write_bytes(archive_path.read_bytes().replace(b"Aarhus C", b"Aarhus D", 1))

    assert main([*base, "--dar", str(archive_path)]) == 20

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert summary["status"] == "error"
    assert summary["error"]["error_code"] == "STAGE_ERROR"
