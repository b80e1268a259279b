"""PMTiles archive backend (local file or HTTP range reads)."""

import gzip
import threading
from pathlib import Path

import requests
from pmtiles.reader import MmapSource, Reader
from pmtiles.tile import Compression, TileType

from contourgen.dem_sources.base import DemSource, DemSourceError, DemSourceKind, FetchResult, validate_zxy


_TILE_TYPE_MIME_TYPES = {
    TileType.MVT: "application/x-protobuf",
    TileType.PNG: "image/png",
    TileType.JPEG: "image/jpeg",
    TileType.WEBP: "image/webp",
    TileType.AVIF: "image/avif",
}

HTTP_TIMEOUT_S = 10.0


def mime_type_for_tile_type(tile_type) -> str:
    """Map a PMTiles header tile type to a MIME type."""
    try:
        tile_type = TileType(tile_type)
    except ValueError:
        return "application/octet-stream"
    return _TILE_TYPE_MIME_TYPES.get(tile_type, "application/octet-stream")


class HttpRangeSource:
    """Callable `get_bytes(offset, length)` over HTTP range requests."""

    def __init__(self, url: str, timeout: float = HTTP_TIMEOUT_S):
        self.url = url
        self.timeout = timeout
        self._local = threading.local()

    def _session(self) -> requests.Session:
        # Sessions are not shared across threads.
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def __call__(self, offset: int, length: int) -> bytes:
        headers = {"Range": f"bytes={offset}-{offset + length - 1}"}
        response = self._session().get(self.url, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        data = response.content
        if response.status_code == 200:
            # Server ignored the range header and returned the whole object.
            data = data[offset : offset + length]
        return data


class ArchiveDemSource(DemSource):
    """Read DEM tiles from a PMTiles archive."""

    kind = DemSourceKind.ARCHIVE

    def __init__(self, location: str, logger=None):
        super().__init__(location, logger=logger)
        self._file = None
        is_remote = location.lower().startswith(("http://", "https://"))

        # Open the byte source and read the header once; failures here are fatal.
        try:
            if is_remote:
                get_bytes = HttpRangeSource(location)
            else:
                archive_fp = Path(location).expanduser().resolve()
                if not archive_fp.exists():
                    raise FileNotFoundError(f"PMTiles file not found at: {archive_fp}")
                self._file = archive_fp.open("rb")
                get_bytes = MmapSource(self._file)
            self._reader = Reader(get_bytes)
            self._header = self._reader.header()
        except (OSError, ValueError, requests.RequestException) as err:
            self.close()
            raise DemSourceError(f"failed to open PMTiles source {location}: {err}") from err

        self._mime_type = mime_type_for_tile_type(self._header.get("tile_type"))
        self._tile_compression = self._header.get("tile_compression")
        self.log.debug(
            f"opened PMTiles archive ({'remote' if is_remote else 'local'}) with "
            f"tile_type={self._mime_type}, zoom {self._header.get('min_zoom')}-{self._header.get('max_zoom')}\n"
            f"    {location}"
        )

    @property
    def default_mime_type(self) -> str | None:
        return self._mime_type

    def fetch(self, z: int, x: int, y: int) -> FetchResult:
        validate_zxy(z, x, y)
        try:
            data = self._reader.get(z, x, y)
        except (OSError, ValueError, requests.RequestException) as err:
            self.log.warning(f"error reading PMTiles tile {z}/{x}/{y}: {err}")
            return FetchResult.absent(self._mime_type)

        if not data:
            return FetchResult.absent(self._mime_type)
        if self._tile_compression == Compression.GZIP:
            data = gzip.decompress(data)
        return FetchResult(data=bytes(data), mime_type=self._mime_type)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
