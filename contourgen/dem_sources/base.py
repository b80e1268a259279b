"""Common contracts for DEM source backends."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class DemSourceError(RuntimeError):
    """Raised when a DEM source cannot be opened or initialized."""


class DemSourceKind(Enum):
    """Backend variants selectable from a DEM URL."""

    ARCHIVE = "archive"
    TILE_DATABASE = "tiledb"
    URL_TEMPLATE = "url"


@dataclass(frozen=True)
class DemSourceDescriptor:
    """Parsed DEM URL: which backend to open and where its data lives."""

    kind: DemSourceKind
    location: str


@dataclass(frozen=True)
class FetchResult:
    """Structured output for one DEM tile fetch."""

    data: bytes | None
    mime_type: str | None

    @property
    def found(self) -> bool:
        return self.data is not None

    @classmethod
    def absent(cls, mime_type: str | None = None) -> "FetchResult":
        return cls(data=None, mime_type=mime_type)


# Leading magic bytes for the raster formats DEM tiles are stored in.
_MAGIC_MIME_TYPES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_mime_type(data: bytes | None) -> str | None:
    """Return the image MIME type implied by leading magic bytes, else None."""
    if not data:
        return None
    for magic, mime_type in _MAGIC_MIME_TYPES:
        if data.startswith(magic):
            return mime_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[4:12] in (b"ftypavif", b"ftypavis"):
        return "image/avif"
    return None


def validate_zxy(z: int, x: int, y: int) -> None:
    """Raise ValueError for coordinates outside the quadtree at zoom `z`."""
    if z < 0:
        raise ValueError(f"zoom must be >= 0; got {z}")
    n = 1 << z
    if not (0 <= x < n and 0 <= y < n):
        raise ValueError(f"x/y must be within [0, {n}) at zoom {z}; got x={x}, y={y}")


class DemSource(ABC):
    """Abstract read-only DEM tile source."""

    kind: DemSourceKind

    def __init__(self, location: str, logger=None):
        self.location = location
        self.log = logger or logging.getLogger(__name__)

    @property
    def default_mime_type(self) -> str | None:
        """Image type declared by the container, when it declares one."""
        return None

    @abstractmethod
    def fetch(self, z: int, x: int, y: int) -> FetchResult:
        """Return the tile bytes at (z, x, y) or an absent result."""

    def close(self) -> None:
        """Release backend handles."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.location!r})"
