"""Isoline contour engine: scikit-image tracing, shapely clipping, MVT encoding."""

import logging, math

import mapbox_vector_tile
import numpy as np
from shapely.geometry import LineString, MultiLineString, box
from skimage import measure

from contourgen.contour_options import ResolvedContourOptions
from contourgen.engine.base import ContourEngineBase


def contour_elevations(grid_min: float, grid_max: float, step: float) -> list[float]:
    """Return every multiple of `step` inside [grid_min, grid_max]."""
    assert step > 0, f"step must be > 0; got {step}"
    first = math.ceil(grid_min / step)
    last = math.floor(grid_max / step)
    return [_tidy(k * step) for k in range(first, last + 1)]


def level_index(elevation: float, levels: tuple[float, ...]) -> int:
    """Return the largest index i such that `elevation` is a multiple of levels[i]."""
    index = 0
    for i, step in enumerate(levels):
        if _is_multiple(elevation, step):
            index = i
    return index


def _is_multiple(value: float, step: float, tol: float = 1e-6) -> bool:
    remainder = math.fmod(abs(value), step)
    return remainder < tol or step - remainder < tol


def _tidy(value: float) -> float:
    value = round(value, 9)
    return int(value) if float(value).is_integer() else value


class IsolineEngine(ContourEngineBase):
    """Trace one MultiLineString feature per contour elevation."""

    name = "isolines"

    def __init__(self, logger=None):
        self.log = logger or logging.getLogger(__name__)

    def trace(self, grid: np.ndarray, options: ResolvedContourOptions) -> list[dict]:
        """Return MVT feature dicts (tile pixel space, y down) for `grid`."""
        assert grid.ndim == 2, f"expected a 2D elevation grid; got shape={grid.shape}"
        if not options.levels:
            return []

        grid = np.asarray(grid, dtype=np.float64) * options.multiplier
        finite = np.isfinite(grid)
        if not finite.any():
            return []
        grid_min, grid_max = float(grid[finite].min()), float(grid[finite].max())
        if grid_min == grid_max:
            return []

        height, width = grid.shape
        sx, sy = options.extent / width, options.extent / height
        clip_box = box(-options.buffer, -options.buffer, options.extent + options.buffer, options.extent + options.buffer)

        features = []
        for elevation in contour_elevations(grid_min, grid_max, options.levels[0]):
            lines = []
            for path in measure.find_contours(grid, elevation, mask=finite if not finite.all() else None):
                if len(path) < 2:
                    continue
                # path rows are (row, col); tile space is (x, y) with the pixel center at +0.5
                coords = np.column_stack(((path[:, 1] + 0.5) * sx, (path[:, 0] + 0.5) * sy))
                lines.append(LineString(coords))
            if not lines:
                continue

            geometry = MultiLineString(lines).intersection(clip_box)
            if geometry.is_empty:
                continue
            features.append(
                {
                    "geometry": geometry,
                    "properties": {
                        options.elevation_key: elevation,
                        options.level_key: level_index(elevation, options.levels),
                    },
                }
            )
        return features

    def render(self, grid: np.ndarray, options: ResolvedContourOptions) -> bytes:
        features = self.trace(grid, options)
        self.log.debug(f"traced {len(features)} contour features with levels={list(options.levels)}")
        return mapbox_vector_tile.encode(
            [{"name": options.layer, "features": features}],
            default_options={"extents": options.extent, "y_coord_down": True},
        )
