"""Synthetic placeholder DEM tiles for coordinates with no source data."""

import logging

import numpy as np

from contourgen.dem_sources.base import FetchResult
from contourgen.encodings import elevation_to_rgb
from contourgen.io.rasterio_io import encode_rgb_image, format_for_mime_type, mime_type_for_format, normalize_image_format


def synthesize_blank_tile(
    width: int,
    height: int,
    elevation: float,
    encoding: str,
    image_format: str,
) -> bytes:
    """Encode a uniform elevation into a terrain-RGB image of the requested format."""
    assert width > 0 and height > 0, f"tile size must be > 0; got {width}x{height}"
    image_format = normalize_image_format(image_format)
    r, g, b = elevation_to_rgb(elevation, encoding)

    # Every pixel receives the identical channel triple.
    rgb = np.empty((3, int(height), int(width)), dtype=np.uint8)
    rgb[0].fill(r)
    rgb[1].fill(g)
    rgb[2].fill(b)
    return encode_rgb_image(rgb, image_format)


def blank_tile_for(result: FetchResult, config, logger=None) -> FetchResult:
    """Return a synthesized replacement for an absent fetch result."""
    log = logger or logging.getLogger(__name__)

    # Prefer the format the source declares so the blank tile matches its siblings.
    image_format = format_for_mime_type(result.mime_type) or normalize_image_format(config.blank_tile_format)
    log.debug(
        f"synthesizing {config.blank_tile_size}px {image_format} blank tile "
        f"(elevation={config.blank_tile_no_data_value}, encoding={config.encoding})"
    )
    data = synthesize_blank_tile(
        config.blank_tile_size,
        config.blank_tile_size,
        config.blank_tile_no_data_value,
        config.encoding,
        image_format,
    )
    return FetchResult(data=data, mime_type=mime_type_for_format(image_format))
