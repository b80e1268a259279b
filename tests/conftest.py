"""Pytest fixtures for contour-generator tests."""

import logging, pathlib, sqlite3

import numpy as np
import pytest
from pmtiles.tile import Compression, TileType, zxy_to_tileid
from pmtiles.writer import write as pmtiles_write

from contourgen.config import RunConfig
from contourgen.engine import ContourEngineBase


# Elevation ramp (meters) encoded into every synthetic DEM tile.
DEM_TILE_SIZE = 32
DEM_MIN_M = 5.0
DEM_MAX_M = 310.0


def terrain_rgb(elevation: np.ndarray, encoding: str = "mapbox") -> np.ndarray:
    """Encode an elevation grid into a (3, h, w) uint8 terrain-RGB array."""
    if encoding == "terrarium":
        value = np.floor((elevation + 32768.0) * 256.0 + 0.5)
    else:
        value = np.floor((elevation + 10000.0) / 0.1 + 0.5)
    value = np.clip(value, 0, 0xFFFFFF).astype(np.uint32)
    return np.stack([(value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF]).astype(np.uint8)


def ramp_grid(size: int = DEM_TILE_SIZE) -> np.ndarray:
    """West-to-east elevation ramp used as synthetic DEM content."""
    row = np.linspace(DEM_MIN_M, DEM_MAX_M, size, dtype=np.float64)
    return np.tile(row, (size, 1))


def ramp_png(encoding: str = "mapbox") -> bytes:
    from contourgen.io.rasterio_io import encode_rgb_image

    return encode_rgb_image(terrain_rgb(ramp_grid(), encoding), "png")


class RecordingEngine(ContourEngineBase):
    """Engine double that records calls and returns a fixed payload."""

    name = "recording"

    def __init__(self, payload: bytes = b"\x1a\x00"):
        self.payload = payload
        self.calls = []

    def render(self, grid, options):
        self.calls.append((grid.shape, options.levels))
        return self.payload


#===============================================================================
# pytest custom config------------
#===============================================================================


def pytest_runtest_teardown(item, nextitem):
    """Custom teardown message."""
    test_name = item.name
    print(f"\n{'='*20} Test completed: {test_name} {'='*20}\n\n\n")


def pytest_report_header(config):
    """Show pytest invocation arguments in the test header."""
    return f"pytest arguments: {' '.join(config.invocation_params.args)}"


# -------------------
# ----- Fixtures -----
# -------------------
@pytest.fixture(scope="session")
def logger():
    """Simple logger fixture for the function under test."""
    log = logging.getLogger("pytest")
    log.setLevel(logging.DEBUG)
    # keep handlers minimal to avoid duplicate logs across runs
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")
        handler.setFormatter(formatter)
        log.addHandler(handler)
    return log


@pytest.fixture(scope="session")
def dem_png() -> bytes:
    """One mapbox-encoded ramp tile as PNG bytes."""
    return ramp_png("mapbox")


def write_mbtiles(fp: pathlib.Path, tiles: dict, tile_format: str = "png") -> pathlib.Path:
    """Write an MBTiles file from `{(z, x, y): bytes}` keyed by XYZ coordinates."""
    conn = sqlite3.connect(fp)
    try:
        conn.execute("CREATE TABLE metadata (name TEXT, value TEXT)")
        conn.execute(
            "CREATE TABLE tiles (zoom_level INTEGER, tile_column INTEGER, tile_row INTEGER, tile_data BLOB)"
        )
        conn.executemany("INSERT INTO metadata VALUES (?, ?)", [("name", "dem"), ("format", tile_format)])
        # MBTiles rows are TMS: XYZ y=0 at zoom 1 is stored as row 1.
        conn.executemany(
            "INSERT INTO tiles VALUES (?, ?, ?, ?)",
            [(z, x, (1 << z) - 1 - y, sqlite3.Binary(data)) for (z, x, y), data in tiles.items()],
        )
        conn.commit()
    finally:
        conn.close()
    return fp


@pytest.fixture(scope="function")
def mbtiles_fp(tmp_path: pathlib.Path, dem_png: bytes) -> pathlib.Path:
    """Create an MBTiles file holding DEM tiles (1, 0, 0) and (1, 1, 0)."""
    return write_mbtiles(tmp_path / "dem.mbtiles", {(1, 0, 0): dem_png, (1, 1, 0): dem_png})


@pytest.fixture(scope="function")
def pmtiles_fp(tmp_path: pathlib.Path, dem_png: bytes) -> pathlib.Path:
    """Create a PMTiles archive holding DEM tiles (0, 0, 0) and (1, 0, 0)."""
    fp = tmp_path / "dem.pmtiles"
    with pmtiles_write(str(fp)) as writer:
        for z, x, y in sorted([(0, 0, 0), (1, 0, 0)], key=lambda zxy: zxy_to_tileid(*zxy)):
            writer.write_tile(zxy_to_tileid(z, x, y), dem_png)
        writer.finalize(
            {
                "tile_type": TileType.PNG,
                "tile_compression": Compression.NONE,
                "min_zoom": 0,
                "max_zoom": 1,
                "min_lon_e7": -1800000000,
                "min_lat_e7": -850511290,
                "max_lon_e7": 1800000000,
                "max_lat_e7": 850511290,
                "center_zoom": 0,
                "center_lon_e7": 0,
                "center_lat_e7": 0,
            },
            {"name": "dem"},
        )
    return fp


@pytest.fixture(scope="function")
def run_config(tmp_path: pathlib.Path, mbtiles_fp: pathlib.Path):
    """Factory for run configurations over the MBTiles fixture."""

    def _build(**overrides) -> RunConfig:
        options = {
            "dem_url": f"tiledb://{mbtiles_fp}",
            "encoding": "mapbox",
            "source_max_zoom": 1,
            "increment": 50,
            "output_max_zoom": 2,
            "output_dir": tmp_path / "out",
            "processes": 2,
            "batch_size": 4,
            "blank_tile_size": DEM_TILE_SIZE,
        }
        options.update(overrides)
        return RunConfig(**options).validate()

    return _build


@pytest.fixture(scope="function")
def recording_engine() -> RecordingEngine:
    return RecordingEngine()


def gdal_has_driver(name: str) -> bool:
    """Return whether the installed GDAL build ships a raster driver."""
    import rasterio

    with rasterio.Env() as env:
        return name in env.drivers()
