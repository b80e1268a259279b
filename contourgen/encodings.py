"""Elevation <-> RGB encodings used by terrain-RGB DEM tiles."""

import math

import numpy as np


ENCODINGS = ("mapbox", "terrarium")

TERRARIUM_MULT = 256.0
TERRARIUM_OFFSET = 32768.0

MAPBOX_INTERVAL = 0.1
MAPBOX_OFFSET = -10000.0

# Quantization step of each encoding in meters.
ENCODING_RESOLUTION = {
    "terrarium": 1.0 / TERRARIUM_MULT,
    "mapbox": MAPBOX_INTERVAL,
}


def validate_encoding(encoding: str) -> str:
    """Return `encoding` unchanged or raise ValueError for unsupported values."""
    if encoding not in ENCODINGS:
        raise ValueError(f'encoding must be either "mapbox" or "terrarium", got {encoding!r}')
    return encoding


def elevation_to_rgb(elevation: float, encoding: str) -> tuple[int, int, int]:
    """Encode one elevation value into an (r, g, b) byte triple."""
    validate_encoding(encoding)
    if encoding == "terrarium":
        value = math.floor((float(elevation) + TERRARIUM_OFFSET) * TERRARIUM_MULT + 0.5)
    else:
        value = math.floor((float(elevation) - MAPBOX_OFFSET) / MAPBOX_INTERVAL + 0.5)

    # Clamp to the 24-bit range before splitting into channels.
    value = max(0, min(0xFFFFFF, int(value)))
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


def rgb_to_elevation(rgb: np.ndarray, encoding: str) -> np.ndarray:
    """Decode a (bands, height, width) uint8 array into float32 elevations."""
    validate_encoding(encoding)
    assert rgb.ndim == 3 and rgb.shape[0] >= 3, f"rgb must be (bands>=3, h, w); got {rgb.shape}"
    r = rgb[0].astype(np.float64)
    g = rgb[1].astype(np.float64)
    b = rgb[2].astype(np.float64)
    if encoding == "terrarium":
        elevation = r * 256.0 + g + b / 256.0 - TERRARIUM_OFFSET
    else:
        elevation = MAPBOX_OFFSET + (r * 65536.0 + g * 256.0 + b) * MAPBOX_INTERVAL
    return elevation.astype(np.float32)
