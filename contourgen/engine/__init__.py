"""Engine package exports."""

from contourgen.engine.base import ContourEngineBase
from contourgen.engine.isolines import IsolineEngine


__all__ = ["ContourEngineBase", "IsolineEngine"]
