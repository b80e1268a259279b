"""Rasterio-backed image codec for DEM tile bytes."""

import warnings

import numpy as np
from rasterio.errors import NotGeoreferencedWarning
from rasterio.io import MemoryFile

from contourgen.encodings import rgb_to_elevation


IMAGE_FORMATS = ("png", "webp", "jpeg")
_FORMAT_ALIASES = {"jpg": "jpeg"}

# GDAL driver plus creation options per output format.
IMAGE_FORMAT_OPTIONS = {
    "png": {"driver": "PNG"},
    "webp": {"driver": "WEBP", "LOSSLESS": "TRUE"},
    "jpeg": {"driver": "JPEG", "QUALITY": "80"},
}

WEB_MERCATOR_CRS = "EPSG:3857"

_MIME_TYPES = {
    "png": "image/png",
    "webp": "image/webp",
    "jpeg": "image/jpeg",
}


def normalize_image_format(image_format: str) -> str:
    """Return the canonical format name or raise ValueError when unsupported."""
    key = str(image_format).strip().lower()
    key = _FORMAT_ALIASES.get(key, key)
    if key not in IMAGE_FORMATS:
        raise ValueError(f"unsupported image format {image_format!r}; must be one of: {', '.join(IMAGE_FORMATS)}")
    return key


def get_image_format_options(image_format: str) -> dict:
    """Return a copy of the driver/creation options for safe per-call mutation."""
    return dict(IMAGE_FORMAT_OPTIONS[normalize_image_format(image_format)])


def mime_type_for_format(image_format: str) -> str:
    return _MIME_TYPES[normalize_image_format(image_format)]


def format_for_mime_type(mime_type: str | None) -> str | None:
    """Map an image MIME type (or bare format name) to a supported format, else None."""
    if not mime_type:
        return None
    subtype = str(mime_type).split(";", 1)[0].strip().lower()
    if "/" in subtype:
        subtype = subtype.split("/", 1)[1]
    subtype = _FORMAT_ALIASES.get(subtype, subtype)
    return subtype if subtype in IMAGE_FORMATS else None


def encode_rgb_image(rgb: np.ndarray, image_format: str) -> bytes:
    """Encode a (3, height, width) uint8 array into image bytes."""
    assert rgb.ndim == 3 and rgb.shape[0] == 3, f"rgb must be (3, h, w); got {rgb.shape}"
    options = get_image_format_options(image_format)
    driver = options.pop("driver")
    count, height, width = rgb.shape

    # Tiles carry no georeferencing; silence rasterio's warning about it.
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with MemoryFile() as memfile:
            with memfile.open(
                driver=driver,
                width=width,
                height=height,
                count=count,
                dtype="uint8",
                **options,
            ) as dst:
                dst.write(rgb.astype(np.uint8, copy=False))
            return memfile.read()


def decode_rgb_image(data: bytes) -> np.ndarray:
    """Decode image bytes into a (3, height, width) uint8 array."""
    assert data, "image data cannot be empty"
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with MemoryFile(data) as memfile:
            with memfile.open() as src:
                pixels = src.read()
                if src.count >= 3:
                    return pixels[:3].astype(np.uint8, copy=False)

                # Paletted single-band images are expanded through their colormap.
                if src.count == 1:
                    try:
                        colormap = src.colormap(1)
                    except ValueError:
                        colormap = None
                    if colormap:
                        lut = np.zeros((256, 3), dtype=np.uint8)
                        for index, color in colormap.items():
                            lut[index] = color[:3]
                        return np.moveaxis(lut[pixels[0]], -1, 0)
    raise ValueError(f"image must have at least 3 bands or a colormap; got {pixels.shape[0]} band(s)")


def decode_elevation(data: bytes, encoding: str) -> np.ndarray:
    """Decode terrain-RGB image bytes into a float32 elevation grid."""
    return rgb_to_elevation(decode_rgb_image(data), encoding)


def resample_to_child(grid: np.ndarray, parent_bounds, child_bounds) -> np.ndarray:
    """Bilinearly resample the `child_bounds` window of a Web-Mercator `grid` back to full grid size.

    Bounds are (left, bottom, right, top) in EPSG:3857 meters.
    """
    from rasterio.transform import from_bounds
    from rasterio.warp import Resampling, reproject

    assert grid.ndim == 2, f"expected a 2D grid; got shape={grid.shape}"
    height, width = grid.shape
    child = np.empty((height, width), dtype=np.float32)
    reproject(
        source=grid.astype(np.float32, copy=False),
        destination=child,
        src_transform=from_bounds(*parent_bounds, width=width, height=height),
        src_crs=WEB_MERCATOR_CRS,
        dst_transform=from_bounds(*child_bounds, width=width, height=height),
        dst_crs=WEB_MERCATOR_CRS,
        resampling=Resampling.bilinear,
        num_threads=1,
    )
    return child
