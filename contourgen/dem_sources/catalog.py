"""Registry and dispatch for DEM source backends."""

import logging

from contourgen.dem_sources.archive import ArchiveDemSource
from contourgen.dem_sources.base import DemSource, DemSourceDescriptor, DemSourceKind
from contourgen.dem_sources.tiledb import TileDatabaseDemSource
from contourgen.dem_sources.url_template import UrlTemplateDemSource


# Recognized URL prefixes, matched case-insensitively in order.
_PREFIXES = (
    ("archive://", DemSourceKind.ARCHIVE),
    ("pmtiles://", DemSourceKind.ARCHIVE),
    ("tiledb://", DemSourceKind.TILE_DATABASE),
    ("mbtiles://", DemSourceKind.TILE_DATABASE),
)

_SOURCE_REGISTRY = {
    DemSourceKind.ARCHIVE: ArchiveDemSource,
    DemSourceKind.TILE_DATABASE: TileDatabaseDemSource,
    DemSourceKind.URL_TEMPLATE: UrlTemplateDemSource,
}


def parse_dem_url(dem_url: str) -> DemSourceDescriptor:
    """Resolve a DEM URL into a backend kind and location."""
    assert dem_url, "dem_url cannot be empty"
    dem_url = str(dem_url).strip()
    lowered = dem_url.lower()
    for prefix, kind in _PREFIXES:
        if lowered.startswith(prefix):
            location = dem_url[len(prefix):]
            if not location:
                raise ValueError(f"DEM URL has no location after '{prefix}': {dem_url}")
            return DemSourceDescriptor(kind=kind, location=location)
    return DemSourceDescriptor(kind=DemSourceKind.URL_TEMPLATE, location=dem_url)


def open_dem_source(dem_url: str, *, logger=None) -> DemSource:
    """Open the backend selected by `dem_url`; raises DemSourceError when it cannot be opened."""
    log = logger or logging.getLogger(__name__)
    descriptor = parse_dem_url(dem_url)
    log.debug(f"dispatching DEM source for kind={descriptor.kind.value}\n    {descriptor.location}")
    source_class = _SOURCE_REGISTRY[descriptor.kind]
    return source_class(descriptor.location, logger=log)
