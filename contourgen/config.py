"""Frozen run configuration shared by every pyramid job."""

from dataclasses import dataclass, field
from pathlib import Path

from contourgen.contour_options import ContourOptions
from contourgen.encodings import validate_encoding
from contourgen.io.rasterio_io import normalize_image_format


EXECUTORS = ("thread", "process")

# Deepest zoom the XYZ scheme addresses with 32-bit tile indices.
MAX_ZOOM = 30


@dataclass(frozen=True)
class RunConfig:
    """Options for one contour-generation run; immutable and picklable."""

    dem_url: str
    encoding: str = "mapbox"
    source_max_zoom: int = 8
    increment: float = 0
    output_max_zoom: int = 8
    output_dir: Path = field(default_factory=lambda: Path("./output"))
    processes: int = 8
    batch_size: int = 25
    executor: str = "thread"
    blank_tile_no_data_value: float = 0
    blank_tile_size: int = 512
    blank_tile_format: str = "png"
    use_progress: bool = False

    def __post_init__(self):
        object.__setattr__(self, "output_dir", Path(self.output_dir))

    def validate(self) -> "RunConfig":
        """Raise ValueError on any invalid option; return self for chaining."""
        if not self.dem_url:
            raise ValueError("dem_url is required")
        validate_encoding(self.encoding)
        normalize_image_format(self.blank_tile_format)
        if self.executor not in EXECUTORS:
            raise ValueError(f"executor must be one of {EXECUTORS}; got {self.executor!r}")

        for name in ("processes", "batch_size", "blank_tile_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer; got {value!r}")
        for name in ("source_max_zoom", "output_max_zoom"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_ZOOM:
                raise ValueError(f"{name} must be an integer in [0, {MAX_ZOOM}]; got {value!r}")
        if self.increment < 0:
            raise ValueError(f"increment must be >= 0; got {self.increment}")
        return self

    def contour_options(self) -> ContourOptions:
        return ContourOptions.from_increment(self.increment)
