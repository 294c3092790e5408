"""Barrier predicate: which elevations belong to the navigable medium."""

import math
from dataclasses import dataclass

import numpy as np

from coord_cartesian.constants import BarrierConfig
from coord_cartesian.errors import InvalidInputError


@dataclass(frozen=True)
class BarrierPredicate:
    """Navigable elevation band [min_elevation, max_elevation).

    The upper bound is exclusive so that, with the default max_elevation of 0,
    a cell at sea level is land. Depths are negative.

    Attributes:
        min_elevation: Deepest navigable elevation (inclusive)
        max_elevation: Shallowest bound (exclusive), the "land" side

    Example:
        shelf = BarrierPredicate(min_elevation=-200.0, max_elevation=-10.0)
        shelf.is_navigable(-50.0)  # True
    """

    min_elevation: float = BarrierConfig.MIN_ELEVATION_M
    max_elevation: float = BarrierConfig.MAX_ELEVATION_M

    def __post_init__(self) -> None:
        if math.isnan(self.min_elevation) or math.isnan(self.max_elevation):
            raise InvalidInputError("Barrier bounds must not be NaN")
        if self.min_elevation >= self.max_elevation:
            raise InvalidInputError(
                f"Navigable band is empty: min_elevation={self.min_elevation} >= max_elevation={self.max_elevation}"
            )

    def is_navigable(self, elevation: float) -> bool:
        return self.min_elevation <= elevation < self.max_elevation

    def mask(self, elevations: np.ndarray) -> np.ndarray:
        """Boolean array, True where cells are navigable."""
        elevations = np.asarray(elevations)
        return (elevations >= self.min_elevation) & (elevations < self.max_elevation)
