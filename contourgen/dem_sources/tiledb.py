"""MBTiles (SQLite) tile-database backend."""

import sqlite3
import threading
from pathlib import Path

from contourgen.dem_sources.base import (
    DemSource,
    DemSourceError,
    DemSourceKind,
    FetchResult,
    sniff_mime_type,
    validate_zxy,
)


_TILE_QUERY = "SELECT tile_data FROM tiles WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?"


def tms_row(z: int, y: int) -> int:
    """Convert an XYZ row into the TMS row MBTiles stores."""
    return (1 << z) - 1 - y


def _mime_type_for_format(tile_format: str | None) -> str | None:
    if not tile_format:
        return None
    tile_format = tile_format.strip().lower()
    if "/" in tile_format:
        return tile_format
    if tile_format == "jpg":
        tile_format = "jpeg"
    if tile_format == "pbf":
        return "application/x-protobuf"
    return f"image/{tile_format}"


class TileDatabaseDemSource(DemSource):
    """Read DEM tiles from an MBTiles file with one read-only connection per thread."""

    kind = DemSourceKind.TILE_DATABASE

    def __init__(self, location: str, logger=None):
        super().__init__(location, logger=logger)
        self.db_fp = Path(location).expanduser().resolve()
        if not self.db_fp.exists():
            raise DemSourceError(f"MBTiles file not found at: {self.db_fp}")
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._lock = threading.Lock()

        # Validate the schema and read the declared tileset format up front.
        try:
            conn = self._connection()
            has_tiles = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type IN ('table', 'view') AND name = 'tiles'"
            ).fetchone()
            if has_tiles is None:
                raise DemSourceError(f"MBTiles file has no 'tiles' table: {self.db_fp}")
            self.metadata = self._read_metadata(conn)
        except sqlite3.Error as err:
            self.close()
            raise DemSourceError(f"failed to open MBTiles file {self.db_fp}: {err}") from err
        except DemSourceError:
            self.close()
            raise

        self.tile_format = self.metadata.get("format")
        if not self.tile_format:
            self.log.warning(
                f"could not retrieve MBTiles format from metadata; blank tiles fall back to the configured format\n"
                f"    {self.db_fp}"
            )
        self.log.debug(f"opened MBTiles database (format={self.tile_format})\n    {self.db_fp}")

    def _connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(f"{self.db_fp.as_uri()}?mode=ro", uri=True, check_same_thread=False)
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    @staticmethod
    def _read_metadata(conn: sqlite3.Connection) -> dict[str, str]:
        try:
            rows = conn.execute("SELECT name, value FROM metadata").fetchall()
        except sqlite3.OperationalError:
            return {}
        return {str(name): str(value) for name, value in rows}

    @property
    def default_mime_type(self) -> str | None:
        return _mime_type_for_format(self.tile_format)

    def fetch(self, z: int, x: int, y: int) -> FetchResult:
        validate_zxy(z, x, y)
        row = self._connection().execute(_TILE_QUERY, (z, x, tms_row(z, y))).fetchone()
        if row is None or row[0] is None:
            return FetchResult.absent()

        data = bytes(row[0])
        mime_type = sniff_mime_type(data) or self.default_mime_type or "image/png"
        return FetchResult(data=data, mime_type=mime_type)

    def close(self) -> None:
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()
