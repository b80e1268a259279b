"""Per-root-tile pyramid job: expand, fetch, contour, and write every descendant."""

import logging, os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

import numpy as np
from tqdm import tqdm

from contourgen.blank_tile import blank_tile_for
from contourgen.config import RunConfig
from contourgen.contour_options import ContourOptions
from contourgen.dem_sources import DemSource, FetchResult, open_dem_source
from contourgen.engine import ContourEngineBase, IsolineEngine
from contourgen.io.rasterio_io import decode_elevation, resample_to_child
from contourgen.tiles import TileCoord, ancestor_at_zoom, pyramid_descendants, tile_xy_bounds


class JobState(Enum):
    INITIALIZED = "initialized"
    SOURCE_READY = "source_ready"
    EXPANDING = "expanding"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


class TileStatus(Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class WorkItem:
    """One tile to produce plus the shared read-only run options."""

    tile: TileCoord
    config: RunConfig

    @property
    def output_fp(self) -> Path:
        return tile_output_path(self.config.output_dir, self.tile)


@dataclass(frozen=True)
class TileResult:
    tile: TileCoord
    status: TileStatus
    blank: bool = False


@dataclass
class PyramidJobResult:
    """Per-job tile counts."""

    root: TileCoord
    written: int = 0
    skipped: int = 0
    failed: int = 0
    blank: int = 0

    @property
    def total(self) -> int:
        return self.written + self.skipped + self.failed

    def add(self, tile_result: TileResult) -> None:
        if tile_result.status is TileStatus.WRITTEN:
            self.written += 1
        elif tile_result.status is TileStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
        if tile_result.blank:
            self.blank += 1


def tile_output_path(output_dir: str | Path, tile: TileCoord) -> Path:
    """Return `output_dir/{z}/{x}/{y}.pbf`."""
    return Path(output_dir) / str(tile.z) / str(tile.x) / f"{tile.y}.pbf"


def ensure_writable_dir(output_dir: str | Path) -> Path:
    """Create `output_dir` if needed; raise PermissionError when it cannot be written."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    if not os.access(output_dir, os.W_OK | os.X_OK):
        raise PermissionError(f"output directory is not writable: {output_dir}")
    return output_dir


def write_tile(output_fp: Path, data: bytes) -> None:
    """Write through a `.part` sibling and rename so partial files never look complete."""
    output_fp.parent.mkdir(parents=True, exist_ok=True)
    part_fp = output_fp.with_name(output_fp.name + ".part")
    part_fp.write_bytes(data)
    os.replace(part_fp, output_fp)


def fetch_elevation(item: WorkItem, source: DemSource, logger=None) -> tuple[np.ndarray, bool]:
    """Fetch and decode the elevation grid for one tile; returns (grid, used_blank_tile).

    Tiles deeper than the source max zoom are cut from their ancestor and upsampled.
    """
    log = logger or logging.getLogger(__name__)
    config = item.config
    tile = item.tile
    source_tile = ancestor_at_zoom(tile, config.source_max_zoom) if tile.z > config.source_max_zoom else tile

    result = source.fetch(source_tile.z, source_tile.x, source_tile.y)
    blank = not result.found
    if blank:
        log.debug(f"no DEM data at {source_tile}; using blank tile")
        # Sources that report no type for a missing tile fall back to their declared format.
        declared = FetchResult.absent(result.mime_type or source.default_mime_type)
        result = blank_tile_for(declared, config, logger=log)
    grid = decode_elevation(result.data, config.encoding)

    if source_tile != tile:
        grid = resample_to_child(grid, tile_xy_bounds(source_tile), tile_xy_bounds(tile))
    return grid, blank


def process_tile(
    item: WorkItem,
    source: DemSource,
    engine: ContourEngineBase,
    contour_options: ContourOptions,
    logger=None,
) -> TileResult:
    """Produce one output tile; errors are logged and reported as a failed result."""
    log = logger or logging.getLogger(__name__)
    tile = item.tile
    output_fp = item.output_fp
    if output_fp.exists():
        log.info(f"skipping {tile}; output exists\n    {output_fp}")
        return TileResult(tile, TileStatus.SKIPPED)

    log.info(f"generating contours for {tile}")
    try:
        grid, blank = fetch_elevation(item, source, logger=log)
        data = engine.render(grid, contour_options.for_zoom(tile.z))
        write_tile(output_fp, data)
    except Exception as err:
        log.error(f"failed to generate tile {tile}: {err}")
        log.debug(f"tile {tile} traceback", exc_info=True)
        return TileResult(tile, TileStatus.FAILED)

    log.info(f"wrote tile {tile} ({len(data)} bytes)")
    return TileResult(tile, TileStatus.WRITTEN, blank=blank)


class PyramidJob:
    """Generate the contour pyramid below one root tile."""

    def __init__(
        self,
        root: TileCoord,
        config: RunConfig,
        *,
        engine: ContourEngineBase | None = None,
        source_factory: Callable[..., DemSource] = open_dem_source,
        logger=None,
    ):
        assert isinstance(root, TileCoord), f"root must be a TileCoord; got {type(root)!r}"
        self.root = root
        self.config = config
        self.log = logger or logging.getLogger(__name__)
        self.engine = engine if engine is not None else IsolineEngine(logger=self.log)
        self.source_factory = source_factory
        self.contour_options = config.contour_options()
        self.state = JobState.INITIALIZED

    def _set_state(self, state: JobState) -> None:
        self.log.debug(f"job {self.root}: {self.state.value} -> {state.value}")
        self.state = state

    def _batches(self, items: list[WorkItem]):
        size = self.config.batch_size
        batches = [items[i : i + size] for i in range(0, len(items), size)]
        if self.config.use_progress:
            return tqdm(batches, desc=f"pyramid {self.root}", unit="batch", leave=False)
        return batches

    def run(self) -> PyramidJobResult:
        """Run the job to completion; job-level failures move to FAILED and re-raise."""
        result = PyramidJobResult(root=self.root)
        try:
            ensure_writable_dir(self.config.output_dir)
            source = self.source_factory(self.config.dem_url, logger=self.log)
        except Exception:
            self._set_state(JobState.FAILED)
            raise

        with source:
            self._set_state(JobState.SOURCE_READY)
            try:
                self._set_state(JobState.EXPANDING)
                tiles = pyramid_descendants(self.root, self.config.output_max_zoom)
                items = [WorkItem(tile, self.config) for tile in tiles]
                self.log.info(f"job {self.root}: {len(items)} tiles to zoom {self.config.output_max_zoom}")

                self._set_state(JobState.WRITING)
                with ThreadPoolExecutor(max_workers=min(self.config.batch_size, len(items))) as pool:
                    for batch_idx, batch in enumerate(self._batches(items)):
                        for tile_result in pool.map(
                            lambda item: process_tile(item, source, self.engine, self.contour_options, logger=self.log),
                            batch,
                        ):
                            result.add(tile_result)
                        self.log.info(
                            f"job {self.root}: batch {batch_idx + 1} done "
                            f"({result.total}/{len(items)} tiles, {result.failed} failed)"
                        )
            except Exception:
                self._set_state(JobState.FAILED)
                raise

        self._set_state(JobState.DONE)
        self.log.info(
            f"job {self.root} finished: written={result.written} skipped={result.skipped} "
            f"failed={result.failed} blank={result.blank}"
        )
        return result


def run_pyramid_job(root: TileCoord, config: RunConfig, logger=None) -> PyramidJobResult:
    """Build and run one job; module-level so process pools can pickle it."""
    return PyramidJob(root, config, logger=logger).run()
