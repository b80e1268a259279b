"""Contour generation options and zoom-dependent increment resolution."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


# Minimum zoom -> [minor, major] contour increments in meters.
DEFAULT_THRESHOLDS = MappingProxyType(
    {
        1: (600, 3000),
        4: (300, 1500),
        8: (150, 750),
        9: (80, 400),
        10: (40, 200),
        11: (20, 100),
        12: (10, 50),
        14: (5, 25),
        16: (1, 5),
    }
)


@dataclass(frozen=True)
class ResolvedContourOptions:
    """Options for one tile with a concrete increment list."""

    levels: tuple[float, ...]
    multiplier: float = 1.0
    layer: str = "contours"
    elevation_key: str = "ele"
    level_key: str = "level"
    extent: int = 4096
    buffer: int = 1


@dataclass(frozen=True)
class ContourOptions:
    """Run-wide contour options: fixed increments or a zoom threshold table."""

    levels: tuple[float, ...] | None = None
    thresholds: Mapping[int, tuple[float, ...]] | None = None
    multiplier: float = 1.0
    layer: str = "contours"
    elevation_key: str = "ele"
    level_key: str = "level"
    extent: int = 4096
    buffer: int = 1
    _sorted_keys: tuple[int, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        if (self.levels is None) == (self.thresholds is None):
            raise ValueError("exactly one of levels or thresholds must be set")
        if self.levels is not None:
            levels = tuple(float(v) for v in self.levels)
            if not levels or any(v <= 0 for v in levels):
                raise ValueError(f"levels must be a non-empty list of positive increments; got {self.levels}")
            object.__setattr__(self, "levels", levels)
        else:
            thresholds = {int(k): _as_levels(v) for k, v in dict(self.thresholds).items()}
            if not thresholds:
                raise ValueError("thresholds cannot be empty")
            object.__setattr__(self, "thresholds", MappingProxyType(thresholds))
            object.__setattr__(self, "_sorted_keys", tuple(sorted(thresholds)))
        assert self.extent > 0, f"extent must be > 0; got {self.extent}"
        assert self.buffer >= 0, f"buffer must be >= 0; got {self.buffer}"

    @classmethod
    def from_increment(cls, increment: float = 0, **kwargs) -> "ContourOptions":
        """Build options from a CLI increment; 0 selects the default threshold table."""
        if increment:
            return cls(levels=(float(increment),), **kwargs)
        return cls(thresholds=DEFAULT_THRESHOLDS, **kwargs)

    def levels_for_zoom(self, zoom: int) -> tuple[float, ...]:
        """Return the increments for `zoom` (largest threshold key <= zoom; empty below the lowest key)."""
        if self.levels is not None:
            return self.levels
        selected: tuple[float, ...] = ()
        for key in self._sorted_keys:
            if key > zoom:
                break
            selected = self.thresholds[key]
        return selected

    def for_zoom(self, zoom: int) -> ResolvedContourOptions:
        return ResolvedContourOptions(
            levels=self.levels_for_zoom(zoom),
            multiplier=self.multiplier,
            layer=self.layer,
            elevation_key=self.elevation_key,
            level_key=self.level_key,
            extent=self.extent,
            buffer=self.buffer,
        )


def _as_levels(value) -> tuple[float, ...]:
    if isinstance(value, (int, float)):
        return (float(value),)
    return tuple(float(v) for v in value)
