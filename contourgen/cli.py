"""Command line interface for contour tile generation."""

import argparse, logging, sys
from pathlib import Path

from contourgen.config import EXECUTORS, RunConfig
from contourgen.encodings import ENCODINGS
from contourgen.runner import run_bbox, run_pyramid, run_zoom
from contourgen.tiles import BoundingBox, TileCoord


log = logging.getLogger(__name__)


def _resolve_log_level(args: argparse.Namespace) -> int:
    """Resolve effective logging level from explicit level or verbosity flags."""
    if args.log_level is not None:
        return getattr(logging, args.log_level)

    # Start from WARNING, then apply -v and -q offsets with DEBUG/ERROR clamp.
    level = logging.WARNING - (10 * int(args.verbose)) + (10 * int(args.quiet))
    return max(logging.DEBUG, min(logging.ERROR, level))


def _configure_logging(args: argparse.Namespace) -> None:
    """Configure stdlib logging using Python default handler routing."""
    effective_level = _resolve_log_level(args)
    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)
    if not root_logger.handlers:
        logging.basicConfig(level=effective_level)


def _use_progress(args: argparse.Namespace) -> bool:
    return not args.no_progress and sys.stderr.isatty()


def build_run_config(args: argparse.Namespace) -> RunConfig:
    """Translate parsed CLI options into a validated run configuration."""
    return RunConfig(
        dem_url=args.demUrl,
        encoding=args.encoding,
        source_max_zoom=args.sourceMaxZoom,
        increment=args.increment,
        output_max_zoom=args.outputMaxZoom,
        output_dir=args.outputDir,
        processes=args.processes,
        batch_size=args.batchSize,
        executor=args.executor,
        blank_tile_no_data_value=args.blankTileNoDataValue,
        blank_tile_size=args.blankTileSize,
        blank_tile_format=args.blankTileFormat,
        use_progress=_use_progress(args),
    ).validate()


def main_cli(args: argparse.Namespace) -> int:
    """Run the CLI command selected by parsed arguments."""
    config = build_run_config(args)

    if args.command == "pyramid":
        summary = run_pyramid(TileCoord(args.z, args.x, args.y), config, logger=log)
    elif args.command == "zoom":
        summary = run_zoom(config, output_min_zoom=args.outputMinZoom, logger=log)
    elif args.command == "bbox":
        bbox = BoundingBox(args.minx, args.miny, args.maxx, args.maxy)
        summary = run_bbox(config, bbox, output_min_zoom=args.outputMinZoom, logger=log)
    else:
        raise ValueError(f"unsupported command: {args.command}")

    if summary.failed:
        log.warning(f"{summary.failed} tiles failed; rerun to retry them")
    log.info(
        f"done: written={summary.written} skipped={summary.skipped} "
        f"failed={summary.failed} blank={summary.blank}"
    )
    print(summary.manifest_fp)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the contour-generator CLI and return an exit code."""
    args = _parse_arguments(argv)
    _configure_logging(args)
    try:
        return main_cli(args)
    except Exception as err:
        log.error(f"{err}")
        log.debug("unhandled CLI exception", exc_info=True)
        return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Register options shared by every subcommand."""
    parser.add_argument(
        "--demUrl",
        required=True,
        help="DEM source: archive://<pmtiles path or url>, tiledb://<mbtiles path>, or a {z}/{x}/{y} URL template.",
    )
    parser.add_argument("--encoding", default="mapbox", help=f"Terrain-RGB elevation encoding ({', '.join(ENCODINGS)}).")
    parser.add_argument("--sourceMaxZoom", type=int, default=8, help="Deepest zoom available in the DEM source.")
    parser.add_argument(
        "--increment",
        type=float,
        default=0,
        help="Contour increment in meters; 0 uses the zoom-dependent threshold table.",
    )
    parser.add_argument("--outputMaxZoom", type=int, default=8, help="Deepest zoom to generate.")
    parser.add_argument("--outputDir", type=Path, default=Path("./output"), help="Output directory for tiles.")
    parser.add_argument("--processes", type=int, default=8, help="Maximum number of root-tile jobs in flight.")
    parser.add_argument("--batchSize", type=int, default=25, help="Tiles processed concurrently inside one job.")
    parser.add_argument(
        "--executor",
        choices=EXECUTORS,
        default="thread",
        help="Worker pool used for root-tile jobs.",
    )
    parser.add_argument(
        "--blankTileNoDataValue",
        type=float,
        default=0,
        help="Elevation written into blank tiles where the source has no data.",
    )
    parser.add_argument("--blankTileSize", type=int, default=512, help="Blank tile width and height in pixels.")
    parser.add_argument(
        "--blankTileFormat",
        default="png",
        help="Blank tile image format when the source declares none (png, webp, jpeg).",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease logging verbosity (repeatable).",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=None,
        help="Explicit log level override.",
    )


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for contour-generator."""
    parser = argparse.ArgumentParser(
        prog="contour-generator",
        description="Generate contour vector tile pyramids from terrain-RGB DEM tiles.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Register single-pyramid command.
    pyramid_parser = subparsers.add_parser("pyramid", help="Generate the pyramid below one tile.")
    pyramid_parser.add_argument("--x", type=int, required=True, help="Root tile column.")
    pyramid_parser.add_argument("--y", type=int, required=True, help="Root tile row.")
    pyramid_parser.add_argument("--z", type=int, required=True, help="Root tile zoom.")
    _add_common_arguments(pyramid_parser)

    # Register whole-world zoom command.
    zoom_parser = subparsers.add_parser("zoom", help="Generate pyramids for every tile at one zoom.")
    zoom_parser.add_argument("--outputMinZoom", type=int, default=5, help="Zoom of the root tiles.")
    _add_common_arguments(zoom_parser)

    # Register bounding-box command.
    bbox_parser = subparsers.add_parser("bbox", help="Generate pyramids for the tiles covering a bounding box.")
    bbox_parser.add_argument("--minx", type=float, required=True, help="West longitude.")
    bbox_parser.add_argument("--miny", type=float, required=True, help="South latitude.")
    bbox_parser.add_argument("--maxx", type=float, required=True, help="East longitude.")
    bbox_parser.add_argument("--maxy", type=float, required=True, help="North latitude.")
    bbox_parser.add_argument("--outputMinZoom", type=int, default=5, help="Zoom of the root tiles.")
    _add_common_arguments(bbox_parser)
    return parser.parse_args(argv)


if __name__ == "__main__":
    raise SystemExit(main())
