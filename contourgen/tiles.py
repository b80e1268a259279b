"""Tile coordinate enumeration for pyramid, zoom, and bbox runs."""

from dataclasses import dataclass

import mercantile


# Web-Mercator latitude limit used by the standard tile projection.
MAX_MERCATOR_LAT = 85.051129

# Inward nudge for east/south edges so boundary-touching tiles are excluded.
LL_EPSILON = 1e-11


@dataclass(frozen=True, order=True)
class TileCoord:
    """One tile in the standard quadtree addressing scheme."""

    z: int
    x: int
    y: int

    def __post_init__(self):
        for name in ("z", "x", "y"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"tile {name} must be an int; got {value!r}")
        if self.z < 0:
            raise ValueError(f"tile zoom must be >= 0; got {self.z}")
        n = 1 << self.z
        if not (0 <= self.x < n and 0 <= self.y < n):
            raise ValueError(f"tile x/y must be within [0, {n}) at zoom {self.z}; got x={self.x}, y={self.y}")

    def __str__(self) -> str:
        return f"{self.z}/{self.x}/{self.y}"

    def to_mercantile(self) -> mercantile.Tile:
        return mercantile.Tile(self.x, self.y, self.z)

    @classmethod
    def from_mercantile(cls, tile: mercantile.Tile) -> "TileCoord":
        return cls(z=int(tile.z), x=int(tile.x), y=int(tile.y))


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box in degrees (west, south, east, north)."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def __post_init__(self):
        if not (-180.0 <= self.min_lon <= 180.0 and -180.0 <= self.max_lon <= 180.0):
            raise ValueError(f"bbox longitudes must be within [-180, 180]; got {self.min_lon}, {self.max_lon}")
        lat_ok = all(-MAX_MERCATOR_LAT <= lat <= MAX_MERCATOR_LAT for lat in (self.min_lat, self.max_lat))
        if not lat_ok:
            raise ValueError(
                f"bbox latitudes must be within [-{MAX_MERCATOR_LAT}, {MAX_MERCATOR_LAT}]; "
                f"got {self.min_lat}, {self.max_lat}"
            )
        if self.min_lon >= self.max_lon:
            # Antimeridian-crossing boxes land here as well.
            raise ValueError(f"bbox min_lon must be < max_lon; got {self.min_lon} >= {self.max_lon}")
        if self.min_lat >= self.max_lat:
            raise ValueError(f"bbox min_lat must be < max_lat; got {self.min_lat} >= {self.max_lat}")

    def intersects(self, west: float, south: float, east: float, north: float) -> bool:
        """Return True when the box overlaps the given bounds with positive area."""
        return west < self.max_lon and east > self.min_lon and south < self.max_lat and north > self.min_lat


def _clamp_lat(lat: float) -> float:
    return max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, float(lat)))


def pyramid_descendants(root: TileCoord, max_zoom: int) -> list[TileCoord]:
    """Return `root` and every descendant down to `max_zoom`, sorted by (z, x, y)."""
    assert isinstance(root, TileCoord), f"root must be a TileCoord; got {type(root)!r}"
    tiles = [root]
    frontier = [root]

    # Breadth-first subdivision; each child has exactly one parent so no dedupe is needed.
    while frontier:
        next_frontier = []
        for tile in frontier:
            if tile.z >= max_zoom:
                continue
            children = [TileCoord.from_mercantile(child) for child in mercantile.children(tile.to_mercantile())]
            tiles.extend(children)
            next_frontier.extend(children)
        frontier = next_frontier

    return sorted(tiles)


def world_at_zoom(zoom: int) -> list[TileCoord]:
    """Return all tiles covering the world at one zoom level."""
    assert zoom >= 0, f"zoom must be >= 0; got {zoom}"
    n = 1 << zoom
    return [TileCoord(zoom, x, y) for x in range(n) for y in range(n)]


def bbox_at_zoom(bbox: BoundingBox, zoom: int) -> list[TileCoord]:
    """Return all tiles at `zoom` whose footprint intersects `bbox`."""
    assert zoom >= 0, f"zoom must be >= 0; got {zoom}"
    n = 1 << zoom

    # Project the north-west and (nudged) south-east corners to tile indices.
    ul = mercantile.tile(bbox.min_lon, _clamp_lat(bbox.max_lat), zoom)
    lr = mercantile.tile(bbox.max_lon - LL_EPSILON, _clamp_lat(bbox.min_lat + LL_EPSILON), zoom)

    x_min = max(0, min(n - 1, ul.x))
    y_min = max(0, min(n - 1, ul.y))
    x_max = max(x_min, min(n - 1, lr.x))
    y_max = max(y_min, min(n - 1, lr.y))
    return [TileCoord(zoom, x, y) for x in range(x_min, x_max + 1) for y in range(y_min, y_max + 1)]


def tile_bounds(tile: TileCoord) -> tuple[float, float, float, float]:
    """Return the (west, south, east, north) footprint of one tile in degrees."""
    bounds = mercantile.bounds(tile.to_mercantile())
    return (bounds.west, bounds.south, bounds.east, bounds.north)


def ancestor_at_zoom(tile: TileCoord, zoom: int) -> TileCoord:
    """Return the ancestor of `tile` at a lower (or equal) zoom level."""
    assert 0 <= zoom <= tile.z, f"ancestor zoom must be within [0, {tile.z}]; got {zoom}"
    dz = tile.z - zoom
    return TileCoord(zoom, tile.x >> dz, tile.y >> dz)


def tile_xy_bounds(tile: TileCoord) -> tuple[float, float, float, float]:
    """Return the (left, bottom, right, top) footprint of one tile in Web-Mercator meters."""
    bounds = mercantile.xy_bounds(tile.to_mercantile())
    return (bounds.left, bounds.bottom, bounds.right, bounds.top)
