"""End-to-end tests for the contour-generator CLI."""

import json, logging
from pathlib import Path

import mapbox_vector_tile
import pytest

from contourgen.cli import _parse_arguments, _resolve_log_level, main


pytestmark = pytest.mark.e2e


def _common_args(mbtiles_fp: Path, output_dir: Path) -> list[str]:
    return [
        "--demUrl",
        f"tiledb://{mbtiles_fp}",
        "--outputDir",
        str(output_dir),
        "--sourceMaxZoom",
        "1",
        "--increment",
        "50",
        "--blankTileSize",
        "32",
        "--no-progress",
    ]


def test_main_pyramid_writes_tiles_and_manifest(
    tmp_path: Path, mbtiles_fp: Path, capsys: pytest.CaptureFixture[str]
):
    output_dir = tmp_path / "out"
    exit_code = main(
        ["pyramid", "--x", "0", "--y", "0", "--z", "1", "--outputMaxZoom", "2", *_common_args(mbtiles_fp, output_dir)]
    )
    assert exit_code == 0
    assert capsys.readouterr().out.strip() == str(output_dir / "metadata.json")

    tiles = sorted(output_dir.rglob("*.pbf"))
    assert len(tiles) == 5
    decoded = mapbox_vector_tile.decode((output_dir / "1" / "0" / "0.pbf").read_bytes())
    elevations = sorted(f["properties"]["ele"] for f in decoded["contours"]["features"])
    assert elevations == [50, 100, 150, 200, 250, 300]

    metadata = json.loads((output_dir / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["name"] == "Contour_z1_Z2"
    assert (metadata["minzoom"], metadata["maxzoom"]) == ("1", "2")
    assert metadata["format"] == "pbf"
    assert metadata["type"] == "baselayer"
    assert metadata["bounds"] == "-180,-85.051129,180,85.051129"
    layer = json.loads(metadata["json"])["vector_layers"][0]
    assert layer == {
        "id": "contours",
        "fields": {"ele": "Number", "level": "Number"},
        "minzoom": 1,
        "maxzoom": 2,
    }


def test_main_zoom_covers_world_with_blank_fill(tmp_path: Path, mbtiles_fp: Path):
    """Every zoom-1 root is produced; roots missing from the source are blank-filled."""
    output_dir = tmp_path / "out"
    exit_code = main(
        ["zoom", "--outputMinZoom", "1", "--outputMaxZoom", "1", *_common_args(mbtiles_fp, output_dir)]
    )
    assert exit_code == 0
    assert sorted(p.relative_to(output_dir).as_posix() for p in output_dir.rglob("*.pbf")) == [
        "1/0/0.pbf",
        "1/0/1.pbf",
        "1/1/0.pbf",
        "1/1/1.pbf",
    ]
    metadata = json.loads((output_dir / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["name"] == "Contour_z1_Z1"


def test_main_bbox_limits_roots(tmp_path: Path, mbtiles_fp: Path):
    output_dir = tmp_path / "out"
    exit_code = main(
        [
            "bbox",
            "--minx",
            "10",
            "--miny",
            "10",
            "--maxx",
            "20",
            "--maxy",
            "20",
            "--outputMinZoom",
            "1",
            "--outputMaxZoom",
            "2",
            "--processes",
            "2",
            *_common_args(mbtiles_fp, output_dir),
        ]
    )
    assert exit_code == 0
    tiles = sorted(p.relative_to(output_dir).as_posix() for p in output_dir.rglob("*.pbf"))
    assert len(tiles) == 5
    assert "1/1/0.pbf" in tiles


def test_main_verbose_reports_generated_and_skipped_tiles(
    tmp_path: Path, mbtiles_fp: Path, caplog: pytest.LogCaptureFixture
):
    output_dir = tmp_path / "out"
    args = ["pyramid", "--x", "0", "--y", "0", "--z", "1", "--outputMaxZoom", "1", "--verbose"]
    assert main([*args, *_common_args(mbtiles_fp, output_dir)]) == 0
    assert main([*args, *_common_args(mbtiles_fp, output_dir)]) == 0

    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert any(m.startswith("generating contours for 1/0/0") for m in messages)
    assert any(m.startswith("skipping 1/0/0; output exists") for m in messages)


@pytest.mark.parametrize(
    "extra_args",
    [
        pytest.param(["--encoding", "srtm"], id="bad_encoding"),
        pytest.param(["--blankTileFormat", "gif"], id="bad_blank_format"),
        pytest.param(["--processes", "0"], id="zero_processes"),
    ],
)
def test_main_configuration_errors_exit_nonzero(tmp_path: Path, mbtiles_fp: Path, extra_args: list[str]):
    output_dir = tmp_path / "out"
    exit_code = main(["pyramid", "--x", "0", "--y", "0", "--z", "1", *_common_args(mbtiles_fp, output_dir), *extra_args])
    assert exit_code == 1
    assert not output_dir.exists()


def test_main_unopenable_source_exits_nonzero(tmp_path: Path):
    exit_code = main(
        [
            "zoom",
            "--outputMinZoom",
            "0",
            "--outputMaxZoom",
            "0",
            "--demUrl",
            f"archive://{tmp_path / 'missing.pmtiles'}",
            "--outputDir",
            str(tmp_path / "out"),
            "--no-progress",
        ]
    )
    assert exit_code == 1
    assert not (tmp_path / "out" / "metadata.json").exists()


def test_main_missing_required_argument_is_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        main(["pyramid", "--x", "0", "--y", "0", "--z", "0"])
    assert exc_info.value.code == 2


@pytest.mark.parametrize(
    "cli_args, expected_level",
    [
        pytest.param([], logging.WARNING, id="default_warning_level"),
        pytest.param(["-v"], logging.INFO, id="verbose_to_info"),
        pytest.param(["-v", "-v"], logging.DEBUG, id="repeat_verbose_to_debug"),
        pytest.param(["-q"], logging.ERROR, id="quiet_to_error"),
        pytest.param(["-v", "--log-level", "ERROR"], logging.ERROR, id="explicit_level_wins"),
    ],
)
def test_resolve_log_level_from_cli_arguments(cli_args: list[str], expected_level: int):
    parsed_args = _parse_arguments(["zoom", "--demUrl", "tiledb://dem.mbtiles", *cli_args])
    assert _resolve_log_level(parsed_args) == expected_level
