"""I/O utilities for DEM tile image bytes."""

from contourgen.io.rasterio_io import (
    IMAGE_FORMATS,
    decode_elevation,
    decode_rgb_image,
    encode_rgb_image,
    format_for_mime_type,
    mime_type_for_format,
    normalize_image_format,
    resample_to_child,
)

__all__ = [
    "IMAGE_FORMATS",
    "decode_elevation",
    "decode_rgb_image",
    "encode_rgb_image",
    "format_for_mime_type",
    "mime_type_for_format",
    "normalize_image_format",
    "resample_to_child",
]
