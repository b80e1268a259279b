"""Tests for the isoline contour engine."""

import mapbox_vector_tile
import numpy as np
import pytest

from contourgen.contour_options import ContourOptions, ResolvedContourOptions
from contourgen.engine import ContourEngineBase, IsolineEngine
from contourgen.engine.isolines import contour_elevations, level_index


pytestmark = pytest.mark.unit


def _ramp(lo: float, hi: float, size: int = 64) -> np.ndarray:
    return np.tile(np.linspace(lo, hi, size, dtype=np.float32), (size, 1))


def test_contour_elevations_multiples_in_range():
    assert contour_elevations(3.0, 47.0, 10.0) == [10, 20, 30, 40]
    assert contour_elevations(-25.0, 5.0, 10.0) == [-20, -10, 0]
    assert contour_elevations(1.0, 9.0, 10.0) == []


@pytest.mark.parametrize(
    "elevation, levels, expected",
    [
        pytest.param(40, (40, 200), 0, id="minor_only"),
        pytest.param(200, (40, 200), 1, id="major"),
        pytest.param(0, (40, 200), 1, id="zero_is_major"),
        pytest.param(15, (5, 25), 0, id="minor_fine"),
    ],
)
def test_level_index(elevation, levels, expected):
    assert level_index(elevation, levels) == expected


def test_render_emits_one_feature_per_elevation(logger):
    engine = IsolineEngine(logger=logger)
    assert isinstance(engine, ContourEngineBase)
    options = ContourOptions(levels=(50, 100)).for_zoom(12)
    data = engine.render(_ramp(5.0, 310.0), options)

    decoded = mapbox_vector_tile.decode(data, default_options={"y_coord_down": True})
    features = decoded["contours"]["features"]
    elevations = sorted(f["properties"]["ele"] for f in features)
    assert elevations == [50, 100, 150, 200, 250, 300]
    by_ele = {f["properties"]["ele"]: f["properties"]["level"] for f in features}
    assert by_ele[100] == 1 and by_ele[150] == 0
    assert decoded["contours"]["extent"] == 4096
    for feature in features:
        assert feature["geometry"]["type"] in ("LineString", "MultiLineString")


def test_render_vertical_lines_land_at_expected_x():
    """A west-east ramp traces north-south lines at the interpolated column."""
    options = ResolvedContourOptions(levels=(100.0,), extent=64)
    features = IsolineEngine().trace(_ramp(2.0, 128.0, size=64), options)
    assert [f["properties"]["ele"] for f in features] == [100]
    minx, miny, maxx, maxy = features[0]["geometry"].bounds
    # 100 m sits at column 49 of the ramp; pixel centers are offset by half a pixel
    assert minx == pytest.approx(49.5, abs=1e-6)
    assert maxx == pytest.approx(49.5, abs=1e-6)
    assert miny >= -1 and maxy <= 65


@pytest.mark.parametrize(
    "grid, levels",
    [
        pytest.param(np.full((16, 16), 120.0, dtype=np.float32), (10.0,), id="flat_grid"),
        pytest.param(_ramp(0.0, 300.0), (), id="no_levels"),
    ],
)
def test_render_empty_layer(grid, levels):
    data = IsolineEngine().render(grid, ResolvedContourOptions(levels=levels))
    decoded = mapbox_vector_tile.decode(data)
    assert decoded.get("contours", {"features": []})["features"] == []


def test_multiplier_scales_elevations():
    options = ResolvedContourOptions(levels=(100.0,), multiplier=3.28084)
    features = IsolineEngine().trace(_ramp(1.0, 100.0), options)
    assert [f["properties"]["ele"] for f in features] == [100, 200, 300]
