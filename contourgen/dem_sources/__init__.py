"""DEM source backends and registry helpers."""

from contourgen.dem_sources.base import DemSource, DemSourceDescriptor, DemSourceError, DemSourceKind, FetchResult
from contourgen.dem_sources.catalog import open_dem_source, parse_dem_url

__all__ = [
    "DemSource",
    "DemSourceDescriptor",
    "DemSourceError",
    "DemSourceKind",
    "FetchResult",
    "open_dem_source",
    "parse_dem_url",
]
