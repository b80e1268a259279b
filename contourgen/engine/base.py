"""Contour engine interfaces for contour-generator."""

from abc import ABC, abstractmethod

import numpy as np

from contourgen.contour_options import ResolvedContourOptions


class ContourEngineBase(ABC):
    """Abstract interface for elevation-grid -> vector-tile contour engines."""

    name = "base"

    @abstractmethod
    def render(self, grid: np.ndarray, options: ResolvedContourOptions) -> bytes:
        """Trace contours over one decoded elevation tile and return encoded vector tile bytes."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
