"""Run orchestration for the pyramid, zoom, and bbox modes."""

import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from contourgen.config import RunConfig
from contourgen.manifest import RunManifest, write_manifest
from contourgen.pyramid import PyramidJobResult, run_pyramid_job
from contourgen.scheduler import run_bounded
from contourgen.tiles import BoundingBox, TileCoord, bbox_at_zoom, world_at_zoom


@dataclass
class RunSummary:
    """Outcome of one invocation across all root jobs."""

    manifest_fp: Path
    jobs: list[PyramidJobResult] = field(default_factory=list)

    def _sum(self, name: str) -> int:
        return sum(getattr(job, name) for job in self.jobs)

    @property
    def written(self) -> int:
        return self._sum("written")

    @property
    def skipped(self) -> int:
        return self._sum("skipped")

    @property
    def failed(self) -> int:
        return self._sum("failed")

    @property
    def blank(self) -> int:
        return self._sum("blank")


def _check_min_zoom(output_min_zoom: int, config: RunConfig) -> None:
    if output_min_zoom < 0 or output_min_zoom > config.output_max_zoom:
        raise ValueError(
            f"outputMinZoom must be within [0, {config.output_max_zoom}] (outputMaxZoom); got {output_min_zoom}"
        )


def run_roots(
    roots: list[TileCoord],
    config: RunConfig,
    *,
    output_min_zoom: int,
    logger=None,
) -> RunSummary:
    """Schedule one pyramid job per root tile, then write the manifest once."""
    log = logger or logging.getLogger(__name__)
    config.validate()
    log.info(
        f"scheduling {len(roots)} root tiles at zoom {output_min_zoom} "
        f"to zoom {config.output_max_zoom} with {config.processes} {config.executor} workers"
    )

    # Process workers rebuild their own logger; threads share ours.
    if config.executor == "process":
        tasks = [partial(run_pyramid_job, root, config) for root in roots]
    else:
        tasks = [partial(run_pyramid_job, root, config, logger=log) for root in roots]
    jobs = run_bounded(
        tasks,
        config.processes,
        executor=config.executor,
        logger=log,
        use_progress=config.use_progress,
        desc="root tiles",
    )

    manifest_fp = write_manifest(
        config.output_dir,
        RunManifest(minzoom=output_min_zoom, maxzoom=config.output_max_zoom),
        logger=log,
    )
    return RunSummary(manifest_fp=manifest_fp, jobs=jobs)


def run_pyramid(root: TileCoord, config: RunConfig, logger=None) -> RunSummary:
    """Generate the pyramid below a single root tile."""
    log = logger or logging.getLogger(__name__)
    config.validate()
    _check_min_zoom(root.z, config)
    job_result = run_pyramid_job(root, config, logger=log)
    manifest_fp = write_manifest(
        config.output_dir,
        RunManifest(minzoom=root.z, maxzoom=config.output_max_zoom),
        logger=log,
    )
    return RunSummary(manifest_fp=manifest_fp, jobs=[job_result])


def run_zoom(config: RunConfig, output_min_zoom: int = 5, logger=None) -> RunSummary:
    """Generate every pyramid rooted at the world tiles of `output_min_zoom`."""
    _check_min_zoom(output_min_zoom, config)
    return run_roots(world_at_zoom(output_min_zoom), config, output_min_zoom=output_min_zoom, logger=logger)


def run_bbox(config: RunConfig, bbox: BoundingBox, output_min_zoom: int = 5, logger=None) -> RunSummary:
    """Generate pyramids rooted at the `output_min_zoom` tiles covering `bbox`."""
    _check_min_zoom(output_min_zoom, config)
    roots = bbox_at_zoom(bbox, output_min_zoom)
    return run_roots(roots, config, output_min_zoom=output_min_zoom, logger=logger)
