"""Computed artifacts: site placement check, distance matrix, embedding, result bundle.

All classes are frozen; array payloads are copied and marked read-only on
construction, so a result can be shared without defensive copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional

import numpy as np
from scipy.spatial.distance import pdist, squareform

from coord_cartesian.constants import OutputConfig, SiteConfig
from coord_cartesian.errors import InvalidInputError
from coord_cartesian.model.site import Site
from coord_cartesian.model.warning import Warning

if TYPE_CHECKING:
    from coord_cartesian.core.conductance import TransitionModel
    from coord_cartesian.core.raster_grid import GridCell, RasterGrid


def _frozen_array(values, ndim: int, name: str) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    if array.ndim != ndim:
        raise InvalidInputError(f"{name} must be {ndim}-dimensional, got shape {array.shape}")
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class SitePlacement:
    """Where a site landed on the raster.

    Attributes:
        site: The input site
        cell: Snapped cell, or None if the site lies outside the raster
        elevation: Elevation of the snapped cell, or None
        navigable: True if the cell lies inside the navigable band
    """

    site: Site
    cell: Optional[GridCell]
    elevation: Optional[float]
    navigable: bool

    @property
    def outside(self) -> bool:
        return self.cell is None


@dataclass(frozen=True)
class SiteCheck:
    """Typed outcome of validating all sites against the barrier.

    Carries the navigable/blocked classification a map renderer needs.
    """

    placements: tuple[SitePlacement, ...]

    @property
    def ok(self) -> bool:
        return all(p.navigable for p in self.placements)

    @property
    def blocked_ids(self) -> list[str]:
        return [p.site.site_id for p in self.placements if p.cell is not None and not p.navigable]

    @property
    def outside_ids(self) -> list[str]:
        return [p.site.site_id for p in self.placements if p.cell is None]

    @property
    def navigable_ids(self) -> list[str]:
        return [p.site.site_id for p in self.placements if p.navigable]

    def __iter__(self) -> Iterator[SitePlacement]:
        return iter(self.placements)

    def __len__(self) -> int:
        return len(self.placements)


@dataclass(frozen=True, eq=False)
class DistanceMatrix:
    """Symmetric, zero-diagonal, non-negative least-cost distances.

    Row/column i corresponds to site_ids[i], in the input site order.
    """

    values: np.ndarray
    site_ids: tuple[str, ...]

    def __post_init__(self) -> None:
        values = _frozen_array(self.values, ndim=2, name="Distance matrix")
        n = values.shape[0]
        if values.shape != (n, n):
            raise InvalidInputError(f"Distance matrix must be square, got shape {values.shape}")
        if len(self.site_ids) != n:
            raise InvalidInputError(f"Distance matrix has {n} rows but {len(self.site_ids)} site ids")
        if not np.all(np.isfinite(values)):
            raise InvalidInputError("Distance matrix contains non-finite values")
        if np.any(values < 0):
            raise InvalidInputError("Distance matrix contains negative values")
        if np.any(np.diag(values) != 0):
            raise InvalidInputError("Distance matrix diagonal must be zero")
        if not np.allclose(values, values.T, rtol=1e-9, atol=1e-12):
            raise InvalidInputError("Distance matrix is not symmetric")
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "site_ids", tuple(str(s) for s in self.site_ids))

    @property
    def n_sites(self) -> int:
        return len(self.site_ids)

    def condensed(self) -> np.ndarray:
        """Upper-triangle entries in scipy pdist order."""
        return squareform(self.values, checks=False)

    def __getitem__(self, key):
        return self.values[key]

    def __repr__(self) -> str:
        return f"DistanceMatrix(n_sites={self.n_sites})"


@dataclass(frozen=True, eq=False)
class Embedding:
    """Cartesian coordinates for each site, aligned with the distance matrix.

    Attributes:
        coordinates: (n_sites, n_components) array
        site_ids: Row labels
        stress: Kruskal stress-1 of the configuration
        n_iter: Iterations used by the winning start
        converged: True if the stress improvement fell below tolerance
    """

    coordinates: np.ndarray
    site_ids: tuple[str, ...]
    stress: float
    n_iter: int
    converged: bool

    def __post_init__(self) -> None:
        coordinates = _frozen_array(self.coordinates, ndim=2, name="Embedding")
        if coordinates.shape[0] != len(self.site_ids):
            raise InvalidInputError(
                f"Embedding has {coordinates.shape[0]} rows but {len(self.site_ids)} site ids"
            )
        object.__setattr__(self, "coordinates", coordinates)
        object.__setattr__(self, "site_ids", tuple(str(s) for s in self.site_ids))

    @property
    def n_components(self) -> int:
        return self.coordinates.shape[1]

    def pairwise_distances(self) -> np.ndarray:
        """Condensed Euclidean distances between embedded sites."""
        return pdist(self.coordinates)

    def __repr__(self) -> str:
        return f"Embedding(n_sites={len(self.site_ids)}, k={self.n_components}, stress={self.stress:.4f})"


@dataclass(frozen=True)
class FitSummary:
    """Log-log linear fit of least-cost against embedded distances.

    Model: log10(least_cost) = intercept + slope * log10(cartesian)
    """

    slope: float
    intercept: float
    r_squared: float
    p_value: float
    stderr: float
    n_pairs: int
    stress: float

    def __str__(self) -> str:
        return (
            f"log10(least-cost) = {self.intercept:.4f} + {self.slope:.4f} * log10(cartesian) "
            f"(R^2={self.r_squared:.4f}, n={self.n_pairs}, stress={self.stress:.4f})"
        )


@dataclass(frozen=True, eq=False)
class CartesianResult:
    """Everything a run produces, in input site order.

    The transition model is returned so later runs on the same grid can skip
    rebuilding it.
    """

    sites: tuple[Site, ...]
    site_check: SiteCheck
    distance_matrix: DistanceMatrix
    embedding: Embedding
    transition: TransitionModel
    raster: RasterGrid
    fit: Optional[FitSummary] = None
    warnings: tuple[Warning, ...] = field(default_factory=tuple)

    @property
    def stress(self) -> float:
        return self.embedding.stress

    @property
    def coordinate_columns(self) -> list[str]:
        return [f"{OutputConfig.COORDINATE_PREFIX}{i + 1}" for i in range(self.embedding.n_components)]

    def augmented_rows(self) -> list[dict[str, object]]:
        """Original site columns plus embedded coordinates (MDS1, MDS2, ...)."""
        rows = []
        for site, coords in zip(self.sites, self.embedding.coordinates):
            if site.attributes:
                row: dict[str, object] = dict(site.attributes)
            else:
                row = {"site": site.site_id, SiteConfig.LON_COLUMN: site.lon, SiteConfig.LAT_COLUMN: site.lat}
            for column, value in zip(self.coordinate_columns, coords):
                row[column] = float(value)
            rows.append(row)
        return rows
